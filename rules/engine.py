"""
Automation Engine - Trigger matching and reply evaluation
=========================================================

Matches an inbound message against the ordered flows of an automation
config and produces everything the webhook needs: the matched flow, the
TwiML reply and the handoff target.

Matching is first-match: flows are tried in config order and the first
active flow whose trigger matches wins. Comparison is against the raw
message, case-sensitive, with no trimming.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from core.exceptions import PatternEvaluationWarning
from core.logging import get_logger

from .handoff import find_handoff_target
from .models import AutomationConfig, AutomationFlow, MatchType
from .renderer import build_document

logger = get_logger("rules.engine")


def trigger_matches(flow: AutomationFlow, message: str) -> bool:
    """
    Check a single flow's trigger against a message.

    Raises:
        re.error: If a regex trigger cannot be compiled
    """
    value = flow.match_value

    if flow.match_type is MatchType.EXACT:
        return message == value
    if flow.match_type is MatchType.CONTAINS:
        return value in message
    if flow.match_type is MatchType.STARTS_WITH:
        return message.startswith(value)
    if flow.match_type is MatchType.REGEX:
        return re.search(value, message) is not None

    return False


def find_matching_flow(
    message: str,
    flows: Iterable[AutomationFlow],
    diagnostics: Optional[List[PatternEvaluationWarning]] = None
) -> Optional[AutomationFlow]:
    """
    Find the first active flow whose trigger matches the message.

    A regex trigger that fails to evaluate is treated as not matching; a
    warning is logged and appended to ``diagnostics`` and the remaining
    flows are still tried.

    Args:
        message: Inbound message text, unmodified
        flows: Flows in priority order
        diagnostics: Optional list collecting pattern warnings

    Returns:
        The matching flow, or None when the fallback should be used
    """
    for flow in flows:
        if not flow.active:
            continue

        try:
            matched = trigger_matches(flow, message)
        except (re.error, RecursionError, MemoryError) as e:
            warning = PatternEvaluationWarning(flow.id, flow.match_value, str(e) or type(e).__name__)
            logger.warning(str(warning), extra={"flow_id": flow.id})
            if diagnostics is not None:
                diagnostics.append(warning)
            continue

        if matched:
            logger.debug(f"Flow '{flow.name}' matched", extra={"flow_id": flow.id})
            return flow

    return None


@dataclass
class Evaluation:
    """
    Outcome of evaluating one inbound message.

    Attributes:
        flow (AutomationFlow): Matched flow, None for the fallback case
        document (str): TwiML reply for the sender
        handoff_number (str): Agent to notify, if any
        warnings (list): Pattern warnings raised while matching
    """
    flow: Optional[AutomationFlow]
    document: str
    handoff_number: Optional[str] = None
    warnings: List[PatternEvaluationWarning] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.flow is not None

    @property
    def responses(self):
        return self.flow.responses if self.flow else ()


class AutomationEngine:
    """
    Evaluates inbound messages against one automation config snapshot.

    The engine holds no mutable state, so one instance can serve concurrent
    requests. The live webhook and the simulator both go through
    ``evaluate`` so their results cannot diverge.

    Example:
        engine = AutomationEngine(config)
        result = engine.evaluate("I need support")
        if result.handoff_number:
            notify(result.handoff_number)
        return result.document
    """

    def __init__(self, config: AutomationConfig):
        self.config = config

    def match(
        self,
        message: str,
        diagnostics: Optional[List[PatternEvaluationWarning]] = None
    ) -> Optional[AutomationFlow]:
        """Return the first matching flow or None."""
        return find_matching_flow(message, self.config.flows, diagnostics)

    def evaluate(self, message: str) -> Evaluation:
        """
        Match the message and render the reply.

        Args:
            message: Inbound message text

        Returns:
            Evaluation with the flow, TwiML document and handoff target
        """
        warnings: List[PatternEvaluationWarning] = []
        flow = self.match(message, warnings)
        responses = flow.responses if flow else ()

        return Evaluation(
            flow=flow,
            document=build_document(responses, self.config.fallback_message),
            handoff_number=find_handoff_target(responses),
            warnings=warnings,
        )

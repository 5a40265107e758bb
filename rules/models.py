"""
Automation Model - Flows, triggers and responses
================================================

Immutable value types describing an automation config. Instances are only
built by ``rules.validation`` (or by the editor, which re-validates), so
code downstream can rely on every invariant holding.

The dictionary form uses the camelCase keys of the JSON documents the
operator edits and exports.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class MatchType(Enum):
    """How a flow's ``match_value`` is compared with the inbound text."""
    EXACT = "exact"               # Whole message equals the value
    CONTAINS = "contains"         # Value appears anywhere in the message
    STARTS_WITH = "starts_with"   # Message begins with the value
    REGEX = "regex"               # Unanchored regular expression search


@dataclass(frozen=True)
class AutomationResponse:
    """
    One outbound message sent when its flow matches.

    Attributes:
        id (str): Identifier, unique within the flow
        message (str): Body text, may be empty when media is attached
        label (str): Optional display tag for the editor
        media_urls (tuple): Absolute URLs attached in order
        handoff_number (str): When set, also escalate to this agent
    """
    id: str
    message: str
    label: Optional[str] = None
    media_urls: Tuple[str, ...] = ()
    handoff_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        if self.label is not None:
            data["label"] = self.label
        data["message"] = self.message
        if self.media_urls:
            data["mediaUrls"] = list(self.media_urls)
        if self.handoff_number:
            data["handoffNumber"] = self.handoff_number
        return data


@dataclass(frozen=True)
class AutomationFlow:
    """
    One automation rule: a trigger plus the responses it sends.

    ``name``, ``description`` and ``tags`` are for the operator only and
    never influence matching.
    """
    id: str
    name: str
    match_type: MatchType
    match_value: str
    description: str = ""
    tags: Tuple[str, ...] = ()
    active: bool = True
    responses: Tuple[AutomationResponse, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "matchType": self.match_type.value,
            "matchValue": self.match_value,
            "tags": list(self.tags),
            "active": self.active,
            "responses": [r.to_dict() for r in self.responses],
        }


@dataclass(frozen=True)
class AutomationConfig:
    """
    Root of an automation config.

    Flow order is trigger priority: the first active flow that matches wins.
    """
    fallback_message: str
    flows: Tuple[AutomationFlow, ...] = field(default_factory=tuple)
    notes: Optional[str] = None

    def get_flow(self, flow_id: str) -> Optional[AutomationFlow]:
        for flow in self.flows:
            if flow.id == flow_id:
                return flow
        return None

    @property
    def active_flows(self) -> Tuple[AutomationFlow, ...]:
        return tuple(flow for flow in self.flows if flow.active)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "flows": [flow.to_dict() for flow in self.flows],
            "fallbackMessage": self.fallback_message,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data


def serialize_config(config: AutomationConfig, indent: Optional[int] = 2) -> str:
    """Serialize a config to the JSON document accepted by ``load_automation_config``."""
    return json.dumps(config.to_dict(), indent=indent, ensure_ascii=False)

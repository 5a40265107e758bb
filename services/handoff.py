"""
Handoff Dispatcher - Notifies a human agent about an escalated chat
===================================================================

Runs after the reply document has been produced. Every failure here is
logged and swallowed: the inbound sender already has their reply and a
missed notification must not change that.
"""

from typing import Iterable, Optional

from core.exceptions import TransportDispatchError
from core.logging import get_logger, mask_address
from rules.handoff import build_handoff_summary, find_handoff_target
from rules.models import AutomationResponse

from .transport import SendResult, TwilioTransport

logger = get_logger("services.handoff")


class HandoffDispatcher:
    """
    Sends the handoff summary to the agent named by a matched flow.

    A single attempt is made per inbound message.
    """

    def __init__(self, transport: Optional[TwilioTransport]):
        self.transport = transport

    async def dispatch(
        self,
        responses: Iterable[AutomationResponse],
        origin: str,
        message: str
    ) -> Optional[SendResult]:
        """
        Notify the handoff agent, if the responses ask for one.

        Args:
            responses: Responses of the matched flow
            origin: Inbound sender identifier
            message: Original inbound text

        Returns:
            SendResult when a notification went out, otherwise None
        """
        target = find_handoff_target(responses)
        if not target:
            return None

        if self.transport is None:
            logger.warning(
                f"Handoff to {mask_address(target)} skipped: Twilio credentials not configured"
            )
            return None

        try:
            result = await self.transport.send(target, build_handoff_summary(origin, message))
        except TransportDispatchError as e:
            logger.error(f"Handoff dispatch failed: {e}", extra={"origin": mask_address(origin)})
            return None

        logger.info(
            f"Handoff sent to {mask_address(target)}",
            extra={"origin": mask_address(origin), "sid": result.id}
        )
        return result

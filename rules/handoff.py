"""
Handoff Decision - Which agent, if any, a matched flow escalates to
===================================================================

Pure helpers only. The network side of a handoff lives in
``services.handoff``.
"""

from typing import Iterable, Optional

from .models import AutomationResponse

WHATSAPP_PREFIX = "whatsapp:"


def find_handoff_target(responses: Iterable[AutomationResponse]) -> Optional[str]:
    """
    Return the handoff number of the first response that declares one.

    Only one escalation is raised per inbound message, however many
    responses carry a number.
    """
    for response in responses:
        if response.handoff_number:
            return response.handoff_number
    return None


def build_handoff_summary(origin: str, message: str) -> str:
    """Text sent to the agent when a conversation is escalated."""
    return f"Heads up! {origin} needs help.\nMessage: {message}"


def as_whatsapp_address(number: str) -> str:
    """Prefix ``whatsapp:`` unless the address already has it."""
    if number.startswith(WHATSAPP_PREFIX):
        return number
    return f"{WHATSAPP_PREFIX}{number}"

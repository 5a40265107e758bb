"""
Services Module - Outbound side effects for FlowWave
====================================================

This module provides the services that talk to the outside world:
- Twilio Transport: sends WhatsApp messages
- Handoff Dispatcher: notifies agents about escalated conversations
"""

from .transport import TwilioTransport, SendResult
from .handoff import HandoffDispatcher

__all__ = [
    "TwilioTransport",
    "SendResult",
    "HandoffDispatcher",
]

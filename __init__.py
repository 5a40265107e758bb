"""
FlowWave - Keyword-triggered WhatsApp Autoresponder
===================================================

Matches inbound WhatsApp messages against an ordered list of automation
flows and replies with TwiML, optionally escalating the conversation to a
human agent.

License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__license__ = "MIT"

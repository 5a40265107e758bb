"""
Web UI Module - FastAPI-based HTTP surface
==========================================

This module exposes the autoresponder over HTTP:
- Twilio inbound webhook returning TwiML
- Simulator for previewing replies
- Manual outbound send
- Config editing API
"""

from .app import create_app, run_app
from .routes import router

__all__ = [
    "create_app",
    "run_app",
    "router",
]

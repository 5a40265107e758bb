"""
Rules Module - Automation rule engine
=====================================

This module holds everything that decides what to reply:
- Automation config model and validation
- First-match trigger matching (exact, contains, starts_with, regex)
- TwiML rendering of matched responses
- Handoff target selection
- An in-memory editing session for flows
"""

from .models import (
    MatchType,
    AutomationResponse,
    AutomationFlow,
    AutomationConfig,
    serialize_config,
)
from .validation import Violation, ValidationResult, validate_config, load_automation_config
from .engine import AutomationEngine, Evaluation, find_matching_flow
from .renderer import build_document
from .handoff import find_handoff_target, build_handoff_summary, as_whatsapp_address
from .defaults import default_config
from .editor import FlowEditor

__all__ = [
    "MatchType",
    "AutomationResponse",
    "AutomationFlow",
    "AutomationConfig",
    "serialize_config",
    "Violation",
    "ValidationResult",
    "validate_config",
    "load_automation_config",
    "AutomationEngine",
    "Evaluation",
    "find_matching_flow",
    "build_document",
    "find_handoff_target",
    "build_handoff_summary",
    "as_whatsapp_address",
    "default_config",
    "FlowEditor",
]

"""
Exception Definitions - Custom exceptions for FlowWave
======================================================

This module defines the error taxonomy used throughout the autoresponder.
Configuration problems are reported to whoever edits the automation,
pattern failures are diagnostics only, and transport failures never reach
the inbound sender.
"""

from typing import Any, Dict, List, Optional


class FlowWaveError(Exception):
    """
    Base exception for all FlowWave errors.

    Attributes:
        message (str): Human-readable error description
        details (dict): Additional error details for debugging
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            details: Optional dictionary with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return formatted error message with details if present."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(FlowWaveError):
    """
    Application settings errors.

    Raised when there are issues with:
    - Unreadable or unparsable settings files
    - Invalid settings values (ports, log levels)
    """
    pass


class ConfigValidationError(FlowWaveError):
    """
    An automation configuration failed validation.

    Carries every violation that was found so the editor can show all
    problems at once. A config that raised this is never applied.

    Attributes:
        violations (list): Violation records with ``path`` and ``message``
    """

    def __init__(self, violations: List[Any], message: str = "Automation config is invalid"):
        self.violations = list(violations)
        super().__init__(message, {"violations": len(self.violations)})

    def as_dicts(self) -> List[Dict[str, str]]:
        """Return violations as plain dictionaries."""
        return [v.to_dict() for v in self.violations]


class PatternEvaluationWarning(FlowWaveError):
    """
    A regex trigger failed while being evaluated against a message.

    The flow is skipped for that message and matching continues. Instances
    are collected as diagnostics rather than raised.
    """

    def __init__(self, flow_id: str, pattern: str, reason: str):
        self.flow_id = flow_id
        self.pattern = pattern
        self.reason = reason
        super().__init__(
            f"Pattern for flow '{flow_id}' failed to evaluate: {reason}",
            {"flow_id": flow_id, "pattern": pattern},
        )

    def to_dict(self) -> Dict[str, str]:
        return {"flowId": self.flow_id, "pattern": self.pattern, "reason": self.reason}


class TransportDispatchError(FlowWaveError):
    """
    Outbound message could not be handed to the channel provider.

    Raised when there are issues with:
    - Missing provider credentials
    - Network failures
    - Provider rejecting the message
    """
    pass


class MalformedInboundPayload(FlowWaveError):
    """Inbound webhook request could not be parsed."""
    pass

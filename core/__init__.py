"""
Core Module - Foundation components for FlowWave
================================================

This module provides the foundational components including:
- Application settings
- Logging setup
- Exception handling
"""

from .config import Settings, load_config, save_config, load_automation
from .exceptions import (
    FlowWaveError,
    ConfigError,
    ConfigValidationError,
    PatternEvaluationWarning,
    TransportDispatchError,
    MalformedInboundPayload,
)
from .logging import setup_logging, get_logger, mask_address

__all__ = [
    "Settings",
    "load_config",
    "save_config",
    "load_automation",
    "FlowWaveError",
    "ConfigError",
    "ConfigValidationError",
    "PatternEvaluationWarning",
    "TransportDispatchError",
    "MalformedInboundPayload",
    "setup_logging",
    "get_logger",
    "mask_address",
]

"""
Logging Module - Centralized logging configuration
=================================================

All FlowWave loggers live under the ``flowwave`` namespace. Console output
is colored for operators watching the server; file output can be JSON so
webhook traffic and handoff failures can be shipped to a log collector.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any
import json
import threading

ROOT_LOGGER = "flowwave"


class JSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for readable terminal output.

    Request context (such as the inbound sender) is appended in brackets.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        formatted = (
            f"{color}{self.BOLD}[{record.levelname}]{self.RESET} "
            f"{timestamp} | {record.name}:{record.lineno} | "
            f"{record.getMessage()}"
        )

        context = getattr(record, "context", None)
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in context.items())
            formatted += f" [{pairs}]"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class ContextFilter(logging.Filter):
    """
    Attach thread-local request context to every record.

    Webhook handlers set the sender and message sid once; every log line
    emitted while handling that request then carries them.
    """

    _context = threading.local()

    @classmethod
    def set_context(cls, **kwargs) -> None:
        if not hasattr(cls._context, "data"):
            cls._context.data = {}
        cls._context.data.update(kwargs)

    @classmethod
    def clear_context(cls) -> None:
        cls._context.data = {}

    def filter(self, record: logging.LogRecord) -> bool:
        data = dict(getattr(self._context, "data", {}) or {})
        data.update(getattr(record, "context", None) or {})
        record.context = data
        return True


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that merges fixed adapter fields with per-call extras.

    ``logger.info("msg", extra={"flow": "abc"})`` ends up in the record's
    ``context`` mapping alongside the adapter's own fields.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        context = dict(self.extra)
        context.update(kwargs.pop("extra", None) or {})
        kwargs["extra"] = {"context": context}
        return msg, kwargs


_loggers: Dict[str, logging.Logger] = {}
_configured = False


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: str = "INFO",
    json_format: bool = False,
    console_output: bool = True
) -> None:
    """
    Set up logging for the application. Safe to call more than once.

    Args:
        log_dir: Directory for log files (optional)
        log_level: Minimum log level to capture
        json_format: Use JSON format for the main log file
        console_output: Also output to console
    """
    global _configured

    if _configured:
        return

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.propagate = False

    context_filter = ContextFilter()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.addFilter(context_filter)
        console_handler.setFormatter(ColoredFormatter())
        root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / "flowwave.log", encoding="utf-8")
        file_handler.addFilter(context_filter)
        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
                )
            )
        root_logger.addHandler(file_handler)

        # Handoff and transport failures, kept apart for alerting
        error_handler = logging.FileHandler(log_path / "errors.log", encoding="utf-8")
        error_handler.setLevel(logging.WARNING)
        error_handler.addFilter(context_filter)
        error_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(error_handler)

    _configured = True


def get_logger(name: str, **extra) -> LoggerAdapter:
    """
    Get a logger under the ``flowwave`` namespace.

    Args:
        name: Dotted logger name, e.g. ``"rules.engine"``
        **extra: Fields included in every record from this adapter

    Example:
        logger = get_logger("services.handoff", component="handoff")
        logger.warning("Dispatch failed", extra={"target": mask_address(to)})
    """
    full_name = name if name.startswith(ROOT_LOGGER) else f"{ROOT_LOGGER}.{name}"

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)

    return LoggerAdapter(_loggers[full_name], extra)


def set_log_context(**kwargs) -> None:
    """Set thread-local context included in subsequent log records."""
    ContextFilter.set_context(**kwargs)


def clear_log_context() -> None:
    """Clear thread-local logging context."""
    ContextFilter.clear_context()


def mask_address(address: Optional[str]) -> str:
    """
    Mask a phone-like address for log output.

    ``whatsapp:+15551234567`` becomes ``whatsapp:+15****4567``.
    """
    if not address:
        return "****"
    prefix = ""
    if ":" in address:
        prefix, address = address.split(":", 1)
        prefix += ":"
    if len(address) > 4:
        return prefix + address[:3] + "****" + address[-4:]
    return prefix + "****"

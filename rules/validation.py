"""
Config Validation - Shape checks for automation configs
=======================================================

Turns a decoded JSON value into an ``AutomationConfig`` or a list of every
problem found. Ordinary bad input is reported through ``ValidationResult``
rather than raised; ``ValidationResult.unwrap`` is there for callers that
want to fail fast.

Validation is pure: no I/O and the same input always gives the same result.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from core.exceptions import ConfigValidationError

from .models import AutomationConfig, AutomationFlow, AutomationResponse, MatchType

MATCH_TYPES = tuple(m.value for m in MatchType)


@dataclass(frozen=True)
class Violation:
    """A single validation problem at ``path`` (e.g. ``flows[1].matchValue``)."""
    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "message": self.message}


@dataclass
class ValidationResult:
    """Either a validated config or the violations that prevented one."""
    config: Optional[AutomationConfig] = None
    violations: List[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.config is not None and not self.violations

    def unwrap(self) -> AutomationConfig:
        """
        Return the config.

        Raises:
            ConfigValidationError: With every violation if validation failed
        """
        if not self.ok:
            raise ConfigValidationError(self.violations)
        return self.config


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


class _Checker:
    """Collects violations while walking a raw document."""

    def __init__(self):
        self.violations: List[Violation] = []

    def fail(self, path: str, message: str) -> None:
        self.violations.append(Violation(path, message))

    def string(self, data: Dict, key: str, path: str, *, required: bool = True,
               non_empty: bool = False, default: Optional[str] = None) -> Optional[str]:
        if key not in data or data[key] is None:
            if required:
                self.fail(_join(path, key), "Required")
            return default
        value = data[key]
        if not isinstance(value, str):
            self.fail(_join(path, key), "Expected string")
            return default
        if non_empty and not value:
            self.fail(_join(path, key), "Must not be empty")
            return default
        return value

    def string_list(self, data: Dict, key: str, path: str) -> Tuple[str, ...]:
        value = data.get(key)
        if value is None:
            return ()
        if not isinstance(value, list):
            self.fail(_join(path, key), "Expected list")
            return ()
        items = []
        for i, item in enumerate(value):
            if isinstance(item, str):
                items.append(item)
            else:
                self.fail(f"{_join(path, key)}[{i}]", "Expected string")
        return tuple(items)


def _is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def _check_unique(check: _Checker, raw: Any, seen: set, path: str, kind: str) -> None:
    item_id = raw.get("id") if isinstance(raw, dict) else None
    if not isinstance(item_id, str) or not item_id:
        return
    if item_id in seen:
        check.fail(path, f"Duplicate {kind} id '{item_id}'")
    seen.add(item_id)


def _validate_response(check: _Checker, raw: Any, path: str) -> Optional[AutomationResponse]:
    if not isinstance(raw, dict):
        check.fail(path, "Expected object")
        return None

    before = len(check.violations)
    response_id = check.string(raw, "id", path, non_empty=True)
    label = check.string(raw, "label", path, required=False)
    message = check.string(raw, "message", path, default="")
    media_urls = check.string_list(raw, "mediaUrls", path)
    handoff = check.string(raw, "handoffNumber", path, required=False)

    for i, url in enumerate(media_urls):
        if not _is_absolute_url(url):
            check.fail(f"{path}.mediaUrls[{i}]", "Invalid url")

    if raw.get("message") == "" and not media_urls:
        check.fail(f"{path}.message", "Provide a message or at least one media URL")

    if len(check.violations) > before:
        return None

    return AutomationResponse(
        id=response_id,
        message=message,
        label=label,
        media_urls=media_urls,
        handoff_number=handoff or None,
    )


def _validate_flow(check: _Checker, raw: Any, path: str) -> Optional[AutomationFlow]:
    if not isinstance(raw, dict):
        check.fail(path, "Expected object")
        return None

    before = len(check.violations)
    flow_id = check.string(raw, "id", path, non_empty=True)
    name = check.string(raw, "name", path, non_empty=True)
    description = check.string(raw, "description", path, required=False, default="")
    match_value = check.string(raw, "matchValue", path, default="")
    tags = check.string_list(raw, "tags", path)

    match_type = None
    raw_type = raw.get("matchType")
    if raw_type is None:
        check.fail(f"{path}.matchType", "Required")
    elif raw_type not in MATCH_TYPES:
        check.fail(
            f"{path}.matchType",
            f"Invalid enum value. Expected {' | '.join(repr(t) for t in MATCH_TYPES)}, "
            f"received {raw_type!r}"
        )
    else:
        match_type = MatchType(raw_type)

    if match_type is MatchType.REGEX:
        try:
            re.compile(match_value)
        except re.error as e:
            check.fail(f"{path}.matchValue", f"Flow '{flow_id}' has an invalid regex: {e}")
    elif match_type is not None and "matchValue" in raw and not match_value:
        check.fail(f"{path}.matchValue", "Must not be empty")

    active = raw.get("active", True)
    if not isinstance(active, bool):
        check.fail(f"{path}.active", "Expected boolean")

    responses = []
    raw_responses = raw.get("responses")
    if not isinstance(raw_responses, list):
        check.fail(f"{path}.responses", "Required" if raw_responses is None else "Expected list")
    else:
        seen = set()
        for i, item in enumerate(raw_responses):
            response_path = f"{path}.responses[{i}]"
            _check_unique(check, item, seen, f"{response_path}.id", "response")
            response = _validate_response(check, item, response_path)
            if response is not None:
                responses.append(response)

    if len(check.violations) > before:
        return None

    return AutomationFlow(
        id=flow_id,
        name=name,
        description=description,
        match_type=match_type,
        match_value=match_value,
        tags=tags,
        active=active,
        responses=tuple(responses),
    )


def validate_config(raw: Any) -> ValidationResult:
    """
    Validate a decoded automation config document.

    Every violation is collected; nothing is partially applied.

    Args:
        raw: Decoded JSON value

    Returns:
        ValidationResult with either ``config`` set or ``violations`` filled
    """
    check = _Checker()

    if not isinstance(raw, dict):
        check.fail("$", "Expected object")
        return ValidationResult(violations=check.violations)

    fallback = check.string(raw, "fallbackMessage", "", non_empty=True)
    notes = check.string(raw, "notes", "", required=False)

    flows = []
    raw_flows = raw.get("flows")
    if not isinstance(raw_flows, list):
        check.fail("flows", "Required" if raw_flows is None else "Expected list")
    else:
        seen = set()
        for i, item in enumerate(raw_flows):
            _check_unique(check, item, seen, f"flows[{i}].id", "flow")
            flow = _validate_flow(check, item, f"flows[{i}]")
            if flow is not None:
                flows.append(flow)

    if check.violations:
        return ValidationResult(violations=check.violations)

    return ValidationResult(
        config=AutomationConfig(fallback_message=fallback, flows=tuple(flows), notes=notes)
    )


def load_automation_config(text: str) -> ValidationResult:
    """Decode a JSON document and validate it."""
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        return ValidationResult(violations=[Violation("$", f"Invalid JSON: {e}")])
    return validate_config(raw)

"""
Flow Editor - In-memory editing session for an automation config
================================================================

Holds the config being edited and applies edits to it. Every edit builds a
new config and runs it through validation before swapping it in, so a
rejected edit leaves the session untouched and requests that already took
a snapshot keep evaluating against it.

Edits use the JSON field names (``matchType``, ``handoffNumber``...) so
patches from the web API can be passed straight through.
"""

import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from core.logging import get_logger

from .defaults import default_config
from .models import AutomationConfig, AutomationFlow, serialize_config
from .validation import validate_config

logger = get_logger("rules.editor")


def new_id() -> str:
    """Fresh identifier for a flow or response. Never reused."""
    return str(uuid.uuid4())


class FlowEditor:
    """
    Editing session around an ``AutomationConfig``.

    Example:
        editor = FlowEditor()
        flow = editor.add_flow()
        editor.update_flow(flow.id, {"matchValue": "refund"})
        engine = AutomationEngine(editor.snapshot())
    """

    def __init__(self, config: Optional[AutomationConfig] = None):
        self._config = config if config is not None else default_config()
        self._lock = threading.Lock()

    def snapshot(self) -> AutomationConfig:
        """Current config. Immutable, safe to hand to another thread."""
        return self._config

    def get_flow(self, flow_id: str) -> Optional[AutomationFlow]:
        return self._config.get_flow(flow_id)

    def to_json(self) -> str:
        return serialize_config(self._config)

    def replace(self, raw: Any) -> AutomationConfig:
        """
        Validate a whole document and make it the current config.

        Raises:
            ConfigValidationError: If the document is invalid
        """
        config = validate_config(raw).unwrap()
        with self._lock:
            self._config = config
        logger.info(f"Automation config replaced ({len(config.flows)} flows)")
        return config

    def reset(self) -> AutomationConfig:
        """Restore the starter config."""
        with self._lock:
            self._config = default_config()
        logger.info("Automation config reset to defaults")
        return self._config

    def _edit(self, change: Callable[[Dict[str, Any]], None]) -> AutomationConfig:
        with self._lock:
            document = self._config.to_dict()
            change(document)
            self._config = validate_config(document).unwrap()
            return self._config

    def _flow_index(self, flows: List[Dict[str, Any]], flow_id: str) -> int:
        for i, flow in enumerate(flows):
            if flow["id"] == flow_id:
                return i
        raise KeyError(flow_id)

    def add_flow(self) -> AutomationFlow:
        """Add an untitled flow in front of all others and return it."""
        flow_id = new_id()

        def change(document):
            document["flows"].insert(0, {
                "id": flow_id,
                "name": "Untitled flow",
                "description": "Describe what this flow automates.",
                "matchType": "contains",
                "matchValue": "keyword",
                "tags": [],
                "active": True,
                "responses": [{
                    "id": new_id(),
                    "label": "Auto reply",
                    "message": "Thanks for reaching out! How can we help you today?",
                }],
            })

        return self._edit(change).get_flow(flow_id)

    def clone_flow(self, flow_id: str) -> AutomationFlow:
        """
        Copy a flow with fresh ids and put the copy first.

        Raises:
            KeyError: If the flow does not exist
        """
        clone_id = new_id()

        def change(document):
            source = document["flows"][self._flow_index(document["flows"], flow_id)]
            clone = dict(source, id=clone_id, name=f"{source['name']} (copy)")
            clone["responses"] = [dict(r, id=new_id()) for r in source["responses"]]
            document["flows"].insert(0, clone)

        return self._edit(change).get_flow(clone_id)

    def delete_flow(self, flow_id: str) -> None:
        """
        Remove a flow.

        Raises:
            KeyError: If the flow does not exist
        """
        def change(document):
            del document["flows"][self._flow_index(document["flows"], flow_id)]

        self._edit(change)
        logger.info(f"Deleted flow {flow_id}")

    def update_flow(self, flow_id: str, changes: Dict[str, Any]) -> AutomationFlow:
        """
        Patch a flow's fields. The id cannot be changed.

        Raises:
            KeyError: If the flow does not exist
            ConfigValidationError: If the patched flow is invalid
        """
        def change(document):
            flow = document["flows"][self._flow_index(document["flows"], flow_id)]
            flow.update({k: v for k, v in changes.items() if k != "id"})

        return self._edit(change).get_flow(flow_id)

    def add_response(self, flow_id: str) -> AutomationFlow:
        """Append a follow-up response to a flow."""
        def change(document):
            flow = document["flows"][self._flow_index(document["flows"], flow_id)]
            flow["responses"].append({
                "id": new_id(),
                "label": "Follow-up",
                "message": "Adding human context here...",
            })

        return self._edit(change).get_flow(flow_id)

    def update_response(self, flow_id: str, response_id: str, changes: Dict[str, Any]) -> AutomationFlow:
        """
        Patch one response of a flow.

        Raises:
            KeyError: If the flow or response does not exist
            ConfigValidationError: If the patched response is invalid
        """
        def change(document):
            flow = document["flows"][self._flow_index(document["flows"], flow_id)]
            for response in flow["responses"]:
                if response["id"] == response_id:
                    response.update({k: v for k, v in changes.items() if k != "id"})
                    return
            raise KeyError(response_id)

        return self._edit(change).get_flow(flow_id)

    def remove_response(self, flow_id: str, response_id: str) -> AutomationFlow:
        """
        Remove one response from a flow.

        Raises:
            KeyError: If the flow or response does not exist
        """
        def change(document):
            flow = document["flows"][self._flow_index(document["flows"], flow_id)]
            remaining = [r for r in flow["responses"] if r["id"] != response_id]
            if len(remaining) == len(flow["responses"]):
                raise KeyError(response_id)
            flow["responses"] = remaining

        return self._edit(change).get_flow(flow_id)

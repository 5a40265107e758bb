"""
Test Web API Module
===================

Tests for the webhook, simulator, send and config editing endpoints.
"""

import xml.etree.ElementTree as ET
import pytest
from unittest.mock import AsyncMock, MagicMock
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from core.config import Settings
from core.exceptions import TransportDispatchError
from rules.defaults import DEFAULT_CONFIG, default_config
from services.transport import SendResult
from ui.web.app import create_app


@pytest.fixture
def fake_transport():
    fake = MagicMock()
    fake.send = AsyncMock(return_value=SendResult(id="SM42", status="queued"))
    return fake


@pytest.fixture
def client(fake_transport):
    app = create_app(settings=Settings(), automation=default_config(), transport=fake_transport)
    return TestClient(app)


@pytest.fixture
def offline_client():
    """App without Twilio credentials."""
    return TestClient(create_app(settings=Settings(), automation=default_config()))


def bodies(document):
    return [m.findtext("Body") for m in ET.fromstring(document.encode("utf-8")).findall("Message")]


class TestWebhook:
    """Tests for the inbound webhook."""

    def test_matched_reply(self, client, fake_transport):
        """A matching message gets the flow's replies as TwiML."""
        response = client.post("/api/webhook", data={"From": "whatsapp:+15551234567", "Body": "pricing?"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/xml")
        assert bodies(response.text) == [
            "Our plans start at $29/month. Here is the full price sheet:",
            "Reply DEMO to book a walkthrough with our team.",
        ]
        fake_transport.send.assert_not_awaited()

    def test_fallback_reply(self, client):
        response = client.post("/api/webhook", data={"From": "whatsapp:+1555", "Body": "hello"})

        assert bodies(response.text) == [DEFAULT_CONFIG["fallbackMessage"]]

    def test_missing_body_falls_back(self, client):
        response = client.post("/api/webhook", data={"From": "whatsapp:+1555"})

        assert response.status_code == 200
        assert bodies(response.text) == [DEFAULT_CONFIG["fallbackMessage"]]

    def test_handoff_dispatched(self, client, fake_transport):
        """Support requests notify the on-call number after replying."""
        response = client.post("/api/webhook", data={"From": "whatsapp:+15551234567", "Body": "site is down"})

        assert response.status_code == 200
        fake_transport.send.assert_awaited_once_with(
            "+15555550100",
            "Heads up! whatsapp:+15551234567 needs help.\nMessage: site is down",
        )

    def test_handoff_failure_keeps_reply(self, client, fake_transport):
        fake_transport.send.side_effect = TransportDispatchError("provider unavailable")

        response = client.post("/api/webhook", data={"From": "whatsapp:+1555", "Body": "help"})

        assert response.status_code == 200
        assert "escalating" in response.text

    def test_handoff_without_transport(self, offline_client):
        response = offline_client.post("/api/webhook", data={"From": "whatsapp:+1555", "Body": "help"})

        assert response.status_code == 200

    def test_json_payload_rejected(self, client):
        """The webhook only accepts form-encoded payloads."""
        response = client.post("/api/webhook", json={"From": "x", "Body": "pricing"})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_uses_edited_config(self, client):
        """Edits made through the API apply to the next inbound message."""
        client.patch("/api/flows/flow-pricing", json={"active": False})

        response = client.post("/api/webhook", data={"From": "whatsapp:+1555", "Body": "pricing"})

        assert bodies(response.text) == [DEFAULT_CONFIG["fallbackMessage"]]


class TestSimulate:
    """Tests for the simulator endpoint."""

    def test_match(self, client):
        response = client.post("/api/simulate", json={**DEFAULT_CONFIG, "message": "need support"})
        data = response.json()

        assert response.status_code == 200
        assert data["matched"] is True
        assert data["flow"]["id"] == "flow-support"
        assert data["handoffNumber"] == "+15555550100"
        assert data["twiml"].startswith("<?xml")
        assert data["warnings"] == []

    def test_no_match(self, client):
        response = client.post("/api/simulate", json={**DEFAULT_CONFIG, "message": "hi"})
        data = response.json()

        assert data["matched"] is False
        assert data["flow"] is None
        assert data["fallbackMessage"] == DEFAULT_CONFIG["fallbackMessage"]
        assert DEFAULT_CONFIG["fallbackMessage"] in data["twiml"]

    def test_does_not_dispatch(self, client, fake_transport):
        client.post("/api/simulate", json={**DEFAULT_CONFIG, "message": "help"})

        fake_transport.send.assert_not_awaited()

    def test_missing_message(self, client):
        response = client.post("/api/simulate", json=DEFAULT_CONFIG)

        assert response.status_code == 422
        assert response.json()["details"] == [
            {"path": "message", "message": "Message content is required for simulation."}
        ]

    def test_invalid_config(self, client):
        """Every violation is reported, not just the first."""
        payload = {"flows": [{"id": "f", "name": "F", "matchType": "fuzzy", "responses": []}], "message": "x"}

        response = client.post("/api/simulate", json=payload)

        paths = {d["path"] for d in response.json()["details"]}
        assert response.status_code == 422
        assert {"fallbackMessage", "flows[0].matchType", "flows[0].matchValue"} <= paths

    def test_invalid_json(self, client):
        response = client.post(
            "/api/simulate", content="{not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON payload."}

    @pytest.mark.parametrize("body", ["null", "false", "0", '""'])
    def test_empty_json_value(self, client, body):
        """Falsy JSON bodies are rejected as invalid payloads."""
        for path in ("/api/simulate", "/api/send"):
            response = client.post(path, content=body, headers={"content-type": "application/json"})

            assert response.status_code == 400
            assert response.json() == {"error": "Invalid JSON payload."}


class TestSend:
    """Tests for manual sends."""

    def test_send(self, client, fake_transport):
        response = client.post("/api/send", json={"to": "+15551234567", "message": "Hello"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "sid": "SM42", "status": "queued"}
        fake_transport.send.assert_awaited_once_with("+15551234567", "Hello", media_urls=None)

    def test_send_with_media(self, client, fake_transport):
        client.post(
            "/api/send",
            json={"to": "+15551234567", "message": "Hi", "mediaUrls": ["https://example.com/a.png"]},
        )

        assert fake_transport.send.call_args.kwargs["media_urls"] == ["https://example.com/a.png"]

    def test_invalid_payload(self, client):
        response = client.post("/api/send", json={"to": "1", "message": ""})

        paths = {d["path"] for d in response.json()["details"]}
        assert response.status_code == 422
        assert paths == {"to", "message"}

    def test_transport_failure(self, client, fake_transport):
        fake_transport.send.side_effect = TransportDispatchError("rejected")

        response = client.post("/api/send", json={"to": "+15551234567", "message": "Hello"})

        assert response.status_code == 502

    def test_no_credentials(self, offline_client):
        response = offline_client.post("/api/send", json={"to": "+15551234567", "message": "Hello"})

        assert response.status_code == 500
        assert "Missing Twilio credentials" in response.json()["error"]


class TestConfigEditing:
    """Tests for the config editing endpoints."""

    def test_get_config(self, client):
        data = client.get("/api/config").json()

        assert [f["id"] for f in data["flows"]] == ["flow-pricing", "flow-support", "flow-demo"]

    def test_create_and_delete_flow(self, client):
        created = client.post("/api/flows")
        flow_id = created.json()["id"]

        assert created.status_code == 201
        assert client.get("/api/config").json()["flows"][0]["id"] == flow_id

        assert client.delete(f"/api/flows/{flow_id}").status_code == 200
        assert client.delete(f"/api/flows/{flow_id}").status_code == 404

    @pytest.mark.parametrize("method, path", [
        ("patch", "/api/flows/flow-demo"),
        ("post", "/api/flows/flow-demo/clone"),
        ("delete", "/api/flows/flow-demo"),
        ("post", "/api/flows/flow-demo/responses"),
    ])
    def test_flow_removed_mid_request(self, client, method, path):
        """A flow deleted after the lookup still yields a 404."""
        editor = client.app.state.editor

        def gone(flow_id, *args):
            raise KeyError(flow_id)

        for name in ("update_flow", "clone_flow", "delete_flow", "add_response"):
            setattr(editor, name, gone)

        kwargs = {"json": {"name": "Renamed"}} if method == "patch" else {}
        response = getattr(client, method)(path, **kwargs)

        assert response.status_code == 404

    def test_invalid_patch(self, client):
        """An invalid edit is rejected and the config stays as it was."""
        response = client.patch("/api/flows/flow-support", json={"matchValue": "(unclosed"})

        assert response.status_code == 422
        assert client.get("/api/config").json()["flows"][1]["matchValue"] == "support|help|down"

    def test_clone(self, client):
        response = client.post("/api/flows/flow-demo/clone")

        assert response.status_code == 201
        assert response.json()["name"] == "Book a demo (copy)"

    def test_responses(self, client):
        flow = client.post("/api/flows/flow-demo/responses").json()
        response_id = flow["responses"][-1]["id"]

        patched = client.patch(
            f"/api/flows/flow-demo/responses/{response_id}", json={"message": "Updated"}
        )
        assert patched.json()["responses"][-1]["message"] == "Updated"

        removed = client.delete(f"/api/flows/flow-demo/responses/{response_id}")
        assert len(removed.json()["responses"]) == 1

        assert client.delete(f"/api/flows/flow-demo/responses/{response_id}").status_code == 404

    def test_replace_and_reset(self, client):
        replaced = client.put("/api/config", json={"flows": [], "fallbackMessage": "Only fallback"})
        assert replaced.status_code == 200
        assert client.get("/api/status").json()["flows"] == {"total": 0, "active": 0}

        client.post("/api/config/reset")
        assert len(client.get("/api/config").json()["flows"]) == 3

    def test_status(self, client, offline_client):
        assert client.get("/api/status").json()["transport"] == {"configured": True}
        assert offline_client.get("/api/status").json()["transport"] == {"configured": False}

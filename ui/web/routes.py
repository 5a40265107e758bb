"""
Web Routes - Webhook, simulator, send and config editing endpoints
==================================================================

All routes are mounted under ``/api``.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, HttpUrl, ValidationError

from core.exceptions import ConfigValidationError, MalformedInboundPayload, TransportDispatchError
from core.logging import clear_log_context, get_logger, mask_address, set_log_context
from rules.engine import AutomationEngine
from rules.validation import Violation, validate_config

logger = get_logger("web.routes")

router = APIRouter()

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class SendRequest(BaseModel):
    """Manual outbound message."""
    to: str = Field(min_length=5)
    message: str = Field(min_length=1)
    mediaUrls: Optional[List[HttpUrl]] = None


async def _read_json(request: Request) -> Any:
    try:
        payload = await request.json()
    except ValueError:
        raise MalformedInboundPayload("Invalid JSON payload.")
    if not payload and not isinstance(payload, (dict, list)):
        raise MalformedInboundPayload("Invalid JSON payload.")
    return payload


def _pydantic_violations(exc: ValidationError) -> List[Violation]:
    return [
        Violation(".".join(str(part) for part in err["loc"]), err["msg"])
        for err in exc.errors()
    ]


def _flow_or_404(request: Request, flow_id: str):
    flow = request.app.state.editor.get_flow(flow_id)
    if flow is None:
        raise HTTPException(status_code=404, detail="Flow not found")
    return flow


def _edit_or_404(edit, *args, detail: str = "Flow not found"):
    try:
        return edit(*args)
    except KeyError:
        raise HTTPException(status_code=404, detail=detail)


# === Inbound ===

@router.post("/webhook")
async def webhook(request: Request, background_tasks: BackgroundTasks):
    """
    Twilio inbound message webhook.

    Replies with TwiML; a handoff notification, if the matched flow asks
    for one, is sent after the reply.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(FORM_CONTENT_TYPES):
        raise MalformedInboundPayload("Expected form-encoded webhook payload")

    try:
        form = await request.form()
    except Exception as e:
        raise MalformedInboundPayload(f"Unparsable form data: {e}")

    sender = str(form.get("From") or "")
    body = str(form.get("Body") or "")

    set_log_context(sender=mask_address(sender), message_sid=form.get("MessageSid", ""))
    try:
        engine = AutomationEngine(request.app.state.editor.snapshot())
        result = engine.evaluate(body)

        logger.info(
            f"Inbound message {'matched ' + repr(result.flow.name) if result.matched else 'fell back'}"
        )

        if result.handoff_number:
            background_tasks.add_task(
                request.app.state.dispatcher.dispatch, result.responses, sender, body
            )
    finally:
        clear_log_context()

    return Response(content=result.document, media_type="text/xml")


# === Simulation ===

@router.post("/simulate")
async def simulate(request: Request):
    """
    Evaluate a test message against a config sent with the request.

    Same engine call as the webhook, so preview and live replies agree.
    """
    payload = await _read_json(request)
    if not isinstance(payload, dict):
        raise ConfigValidationError([Violation("$", "Expected object")])

    document = dict(payload)
    message = document.pop("message", None)

    result = validate_config(document)
    violations = list(result.violations)
    if not isinstance(message, str) or not message:
        violations.append(Violation("message", "Message content is required for simulation."))
    if violations:
        raise ConfigValidationError(violations)

    config = result.config
    evaluation = AutomationEngine(config).evaluate(message)

    return {
        "matched": evaluation.matched,
        "flow": evaluation.flow.to_dict() if evaluation.flow else None,
        "twiml": evaluation.document,
        "handoffNumber": evaluation.handoff_number,
        "fallbackMessage": config.fallback_message,
        "notes": config.notes,
        "warnings": [w.to_dict() for w in evaluation.warnings],
    }


# === Outbound ===

@router.post("/send")
async def send_message(request: Request):
    """Send a WhatsApp message through Twilio."""
    transport = request.app.state.transport

    if transport is None:
        return JSONResponse(
            status_code=500,
            content={
                "error": (
                    "Missing Twilio credentials. Set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, "
                    "and TWILIO_WHATSAPP_NUMBER environment variables."
                )
            }
        )

    payload = await _read_json(request)
    try:
        data = SendRequest.model_validate(payload)
    except ValidationError as e:
        raise ConfigValidationError(_pydantic_violations(e))

    media = [str(url) for url in data.mediaUrls] if data.mediaUrls else None

    try:
        result = await transport.send(data.to, data.message, media_urls=media)
    except TransportDispatchError as e:
        logger.error(f"Failed to send WhatsApp message via Twilio: {e}")
        return JSONResponse(
            status_code=502,
            content={"error": "Unable to send WhatsApp message. Check logs for details."}
        )

    return {"success": True, "sid": result.id, "status": result.status}


# === Config editing ===

@router.get("/config")
async def get_config(request: Request):
    """Return the automation config the webhook is using."""
    return request.app.state.editor.snapshot().to_dict()


@router.put("/config")
async def replace_config(request: Request):
    """Validate and install a whole automation config."""
    payload = await _read_json(request)
    config = request.app.state.editor.replace(payload)
    return config.to_dict()


@router.post("/config/reset")
async def reset_config(request: Request):
    """Restore the starter automation."""
    return request.app.state.editor.reset().to_dict()


@router.post("/flows", status_code=201)
async def create_flow(request: Request):
    """Add an untitled flow at the top of the list."""
    return request.app.state.editor.add_flow().to_dict()


@router.patch("/flows/{flow_id}")
async def update_flow(request: Request, flow_id: str):
    """Patch a flow's fields."""
    _flow_or_404(request, flow_id)
    changes = await _read_json(request)
    if not isinstance(changes, dict):
        raise ConfigValidationError([Violation("$", "Expected object")])
    return _edit_or_404(request.app.state.editor.update_flow, flow_id, changes).to_dict()


@router.post("/flows/{flow_id}/clone", status_code=201)
async def clone_flow(request: Request, flow_id: str):
    """Duplicate a flow with fresh ids."""
    _flow_or_404(request, flow_id)
    return _edit_or_404(request.app.state.editor.clone_flow, flow_id).to_dict()


@router.delete("/flows/{flow_id}")
async def delete_flow(request: Request, flow_id: str):
    """Delete a flow."""
    _flow_or_404(request, flow_id)
    _edit_or_404(request.app.state.editor.delete_flow, flow_id)
    return {"success": True}


@router.post("/flows/{flow_id}/responses", status_code=201)
async def add_response(request: Request, flow_id: str):
    """Append a follow-up response to a flow."""
    _flow_or_404(request, flow_id)
    return _edit_or_404(request.app.state.editor.add_response, flow_id).to_dict()


@router.patch("/flows/{flow_id}/responses/{response_id}")
async def update_response(request: Request, flow_id: str, response_id: str):
    """Patch one response."""
    _flow_or_404(request, flow_id)
    changes = await _read_json(request)
    if not isinstance(changes, dict):
        raise ConfigValidationError([Violation("$", "Expected object")])
    try:
        flow = request.app.state.editor.update_response(flow_id, response_id, changes)
    except KeyError:
        raise HTTPException(status_code=404, detail="Response not found")
    return flow.to_dict()


@router.delete("/flows/{flow_id}/responses/{response_id}")
async def remove_response(request: Request, flow_id: str, response_id: str):
    """Remove one response from a flow."""
    _flow_or_404(request, flow_id)
    try:
        flow = request.app.state.editor.remove_response(flow_id, response_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Response not found")
    return flow.to_dict()


# === Status ===

@router.get("/status")
async def get_status(request: Request) -> Dict[str, Any]:
    """Report transport availability and flow counts."""
    config = request.app.state.editor.snapshot()
    return {
        "transport": {"configured": request.app.state.transport is not None},
        "flows": {"total": len(config.flows), "active": len(config.active_flows)},
    }

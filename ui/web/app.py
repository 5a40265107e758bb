"""
FastAPI Application - Webhook and automation API
================================================

This module creates and configures the FastAPI application: it loads the
settings and the automation config, wires the editor, transport and handoff
dispatcher into ``app.state`` and installs the error handlers.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import Settings, load_config, load_automation
from core.exceptions import ConfigValidationError, MalformedInboundPayload
from core.logging import setup_logging, get_logger
from rules.editor import FlowEditor
from rules.models import AutomationConfig
from services.handoff import HandoffDispatcher
from services.transport import TwilioTransport

logger = get_logger("web.app")


def create_app(
    settings: Optional[Settings] = None,
    automation: Optional[AutomationConfig] = None,
    transport: Optional[TwilioTransport] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings, loaded from file/env when omitted
        automation: Initial automation config, resolved from settings when omitted
        transport: Outbound transport, built from the Twilio settings when omitted

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = load_config()

    setup_logging(
        log_dir=settings.logging.log_dir or None,
        log_level="DEBUG" if settings.web.debug else settings.logging.level,
        json_format=settings.logging.json_format,
    )

    if automation is None:
        automation = load_automation(settings)

    if transport is None:
        transport = TwilioTransport.from_settings(settings.twilio)

    app = FastAPI(
        title=settings.app_name,
        description="Keyword-triggered WhatsApp autoresponder",
        version=settings.version,
        debug=settings.web.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.editor = FlowEditor(automation)
    app.state.transport = transport
    app.state.dispatcher = HandoffDispatcher(transport)

    from .routes import router as main_router
    app.include_router(main_router, prefix="/api")

    @app.exception_handler(ConfigValidationError)
    async def validation_exception_handler(request: Request, exc: ConfigValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "Payload validation failed.", "details": exc.as_dicts()}
        )

    @app.exception_handler(MalformedInboundPayload)
    async def malformed_payload_handler(request: Request, exc: MalformedInboundPayload):
        logger.warning(f"Rejected inbound payload: {exc.message}")
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.web.debug else "An error occurred",
            }
        )

    logger.info(
        f"Web application created ({len(automation.flows)} flows, "
        f"transport {'enabled' if transport else 'disabled'})"
    )

    return app


def run_app(settings: Optional[Settings] = None) -> None:
    """Run the web server with uvicorn."""
    if settings is None:
        settings = load_config()

    app = create_app(settings=settings)

    logger.info(f"Starting web server on {settings.web.host}:{settings.web.port}")

    import uvicorn
    uvicorn.run(
        app,
        host=settings.web.host,
        port=settings.web.port,
        log_level="debug" if settings.web.debug else "info"
    )

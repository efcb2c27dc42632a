"""
Assistant HTTP endpoint

POST /assistant relays one chat message to the assistant gateway.
Any other method on /assistant answers 405. CORS is open to the
configured origins so the browser front end can call it directly.
"""

import json
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.agents import MESSAGE_REQUIRED, AssistantGateway
from src.audit import AuditLogger, create_correlation_id
from src.config import get_settings
from src.config.settings import AppSettings
from src.models.assistant import AssistantRequest
from src.models.collection import ErrorKind


logger = structlog.get_logger(__name__)

UPSTREAM_ERROR = "Failed to process assistant request"


def _bad_request(error: str) -> JSONResponse:
    return JSONResponse({"error": error}, status_code=400)


def create_app(
    gateway: Optional[AssistantGateway] = None,
    audit_logger: Optional[AuditLogger] = None,
    app_settings: Optional[AppSettings] = None,
) -> FastAPI:
    """
    Build the API.

    `gateway` may be None when Gemini is not configured; the endpoint
    then answers 500 instead of failing at startup.
    """
    app_settings = app_settings or get_settings().app
    app = FastAPI(title="Finance Desk API", debug=app_settings.debug_mode)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "assistant_configured": gateway is not None}

    @app.post("/assistant")
    async def assistant(request: Request):
        correlation_id = create_correlation_id()

        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.info("assistant_bad_json", correlation_id=str(correlation_id))
            return _bad_request("Invalid JSON body")

        if not isinstance(body, dict):
            return _bad_request(MESSAGE_REQUIRED)

        try:
            payload = AssistantRequest.model_validate(body)
        except ValidationError as e:
            logger.info(
                "assistant_invalid_request",
                correlation_id=str(correlation_id),
                errors=e.error_count(),
            )
            if audit_logger:
                await audit_logger.log_assistant_request_rejected(
                    reason=f"Invalid request: {e.error_count()} validation error(s)",
                    correlation_id=correlation_id,
                )
            return _bad_request("Invalid request body")

        if payload.message is None or not payload.message.strip():
            if audit_logger:
                await audit_logger.log_assistant_request_rejected(
                    reason=MESSAGE_REQUIRED,
                    correlation_id=correlation_id,
                )
            return _bad_request(MESSAGE_REQUIRED)

        if gateway is None:
            if audit_logger:
                await audit_logger.log_external_service_error(
                    service="gemini",
                    error_message="Assistant is not configured",
                    correlation_id=correlation_id,
                )
            return JSONResponse(
                {"error": UPSTREAM_ERROR, "message": "Assistant is not configured"},
                status_code=500,
            )

        result = await gateway.relay(
            payload.message,
            payload.system_data,
            payload.conversation_history,
            correlation_id=correlation_id,
        )

        if result.ok:
            return JSONResponse(result.reply.model_dump(mode="json", by_alias=True))
        if result.error == ErrorKind.INVALID_INPUT:
            return _bad_request(result.error_message or MESSAGE_REQUIRED)
        return JSONResponse(
            {"error": UPSTREAM_ERROR, "message": result.error_message},
            status_code=500,
        )

    @app.api_route("/assistant", methods=["GET", "HEAD", "OPTIONS", "PUT", "PATCH", "DELETE"])
    async def assistant_method_not_allowed():
        return JSONResponse({"error": "Method not allowed"}, status_code=405)

    return app

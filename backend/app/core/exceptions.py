"""
Global exception handlers for FastAPI.

Maps moderation exceptions to the JSON outcomes the chat client expects,
eliminating try/except boilerplate from routers. Register with
register_exception_handlers(app).

Non-success outcomes that are not server errors (no evidence, already
blocked) answer 200 with success=false so the client can show a message.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.constants import ALREADY_BLOCKED_MESSAGE, NO_EVIDENCE_MESSAGE, SELF_REPORT_MESSAGE
from app.core.middleware import request_id_headers

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    error: str,
    code: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Build a standardized error JSON response."""
    content: dict[str, Any] = {"error": error}
    if code:
        content["code"] = code
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def cors_error_headers(request: Request) -> dict[str, str]:
    """
    CORS headers for responses built outside CORSMiddleware.

    The catch-all handler runs in ServerErrorMiddleware, so its 500 would
    otherwise reach the browser without Access-Control-Allow-Origin.
    """
    origins = get_settings().cors_origins
    if "*" in origins:
        return {"Access-Control-Allow-Origin": "*"}
    origin = request.headers.get("origin")
    if origin and origin in origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


def unsuccessful_response(
    status_code: int, error: str, code: str, **flags: Any
) -> JSONResponse:
    """Build a success=false outcome for an expected, non-fatal condition."""
    content: dict[str, Any] = {"success": False, "error": error, "code": code, **flags}
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all domain exception handlers on the FastAPI app."""
    from app.models.moderation import (
        AlreadyBlockedError,
        ClassifierNotConfiguredError,
        ClassifierUnavailableError,
        NoEvidenceError,
        ReportPersistenceError,
        SelfReportError,
    )

    # --- Expected outcomes ---

    @app.exception_handler(NoEvidenceError)
    async def _no_evidence(request: Request, exc: NoEvidenceError) -> JSONResponse:
        return unsuccessful_response(200, NO_EVIDENCE_MESSAGE, "NO_EVIDENCE")

    @app.exception_handler(AlreadyBlockedError)
    async def _already_blocked(request: Request, exc: AlreadyBlockedError) -> JSONResponse:
        return unsuccessful_response(
            200, ALREADY_BLOCKED_MESSAGE, "ALREADY_BLOCKED", alreadyBlocked=True
        )

    @app.exception_handler(SelfReportError)
    async def _self_report(request: Request, exc: SelfReportError) -> JSONResponse:
        return unsuccessful_response(400, SELF_REPORT_MESSAGE, "SELF_REPORT")

    # --- Fatal for the request ---

    @app.exception_handler(ClassifierUnavailableError)
    async def _classifier_unavailable(
        request: Request, exc: ClassifierUnavailableError
    ) -> JSONResponse:
        logger.error("Classifier unavailable on %s: %s", request.url.path, exc)
        return error_response(500, str(exc), "CLASSIFIER_UNAVAILABLE")

    @app.exception_handler(ClassifierNotConfiguredError)
    async def _classifier_not_configured(
        request: Request, exc: ClassifierNotConfiguredError
    ) -> JSONResponse:
        logger.error("Classifier not configured: %s", exc)
        return error_response(500, str(exc), "CONFIG_ERROR")

    @app.exception_handler(ReportPersistenceError)
    async def _report_persistence(request: Request, exc: ReportPersistenceError) -> JSONResponse:
        logger.error("Report persistence failed on %s: %s", request.url.path, exc)
        return error_response(500, str(exc), "PERSISTENCE_ERROR")

    # --- Catch-all ---

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_response(
            500,
            str(exc) or "Internal server error.",
            "INTERNAL_ERROR",
            headers={**cors_error_headers(request), **request_id_headers(request)},
        )

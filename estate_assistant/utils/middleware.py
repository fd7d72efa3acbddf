"""
Request middleware and the JSON error envelope.
"""

import traceback
import uuid
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..config import Settings
from ..database import utcnow


logger = structlog.get_logger("estate_assistant.http")

REQUEST_ID_HEADER = "X-Request-ID"
BODY_METHODS = ("POST", "PUT", "PATCH")


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def compliance_headers(settings: Settings) -> Dict[str, str]:
    return {
        "X-Compliance-Level": settings.COMPLIANCE_LEVEL,
        "X-Service-Version": settings.APP_VERSION,
        "X-Audit-Enabled": str(settings.AUDIT_LOGGING).lower(),
    }


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """Build the `{success: false, ...}` body every failed request returns."""
    content: Dict[str, Any] = {
        "success": False,
        "error": error,
        "message": message,
        "requestId": get_request_id(request),
        "timestamp": utcnow().isoformat(),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def install_request_middleware(app: FastAPI, settings: Settings) -> None:
    """
    Register the outermost per-request middleware.

    It assigns the request id, rejects bodies that are not JSON or exceed
    MAX_REQUEST_BYTES, stamps the compliance headers on every response and
    turns unexpected exceptions into a 500 envelope.
    """
    static_headers = compliance_headers(settings)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = _check_body(request, settings)
        if response is None:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.exception("Unhandled request error", method=request.method, path=request.url.path)
                details = {"stack": traceback.format_exc()} if settings.is_development else None
                response = error_response(
                    request, 500, "INTERNAL_ERROR", "An unexpected error occurred", details
                )
                response.headers["X-Error-Type"] = type(e).__name__

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers.update(static_headers)

        if settings.AUDIT_LOGGING:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                client=request.client.host if request.client else None,
            )
        return response


def _check_body(request: Request, settings: Settings) -> Optional[JSONResponse]:
    if request.method not in BODY_METHODS:
        return None

    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > settings.MAX_REQUEST_BYTES:
        return error_response(
            request,
            413,
            "Payload too large",
            f"Request body exceeds {settings.MAX_REQUEST_BYTES} bytes",
        )

    content_type = request.headers.get("content-type", "")
    if content_length != "0" and not content_type.startswith("application/json"):
        return error_response(request, 400, "Invalid content type", "Content-Type must be application/json")

    return None

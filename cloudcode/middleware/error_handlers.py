"""
Global error handlers for the API.

Every error leaves the API in one JSON envelope:

    {"error": true, "error_code": "...", "message": "...", "details": {...}}

Application errors carry their own code and details. 5xx responses never
include the underlying message; the full traceback only goes to the log.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cloudcode.core.exceptions import CloudCodeException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_ERROR",
    403: "AUTHORIZATION_ERROR",
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "RESOURCE_CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
}


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "error_code": error_code,
            "message": message,
            "details": details or {},
        },
        headers=headers,
    )


def _caller(request: Request) -> str:
    return getattr(request.state, "user_id", None) or "anonymous"


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error envelope on every error path of the app."""

    @app.exception_handler(CloudCodeException)
    async def cloudcode_exception_handler(request: Request, exc: CloudCodeException) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"{exc.code} ({exc.status_code}): {exc.message} | path={request.url.path} | user={_caller(request)}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """
        Covers FastAPI's HTTPException too, plus router 404/405s.

        A dict detail (from CloudCodeException.to_http_exception) keeps its
        code and details.
        """
        logger.warning(f"HTTP {exc.status_code}: {exc.detail} | path={request.url.path} | user={_caller(request)}")
        headers = getattr(exc, "headers", None)

        if exc.status_code >= 500:
            return error_response(exc.status_code, "INTERNAL_ERROR", GENERIC_ERROR_MESSAGE)

        if isinstance(exc.detail, dict):
            return error_response(
                exc.status_code,
                exc.detail.get("code", _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")),
                exc.detail.get("message", ""),
                exc.detail.get("details"),
                headers,
            )

        return error_response(
            exc.status_code,
            _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            str(exc.detail),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Payload validation failures are 400s with per-field errors."""
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.warning(f"Validation failed | path={request.url.path} | errors={errors}")
        return error_response(400, "VALIDATION_ERROR", "Validation failed", {"errors": errors})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        # Internals stay in the log only.
        logger.exception(
            f"Unhandled {type(exc).__name__} | path={request.url.path} | user={_caller(request)}"
        )
        return error_response(500, "INTERNAL_ERROR", GENERIC_ERROR_MESSAGE)

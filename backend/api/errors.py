"""
Exception handlers.

Every failure leaves the API in the same envelope:

    {"success": false, "error": {"code": "...", "message": "...", "details": {...}}}

Module code raises AppError subclasses and never builds error responses
itself. Anything that is not an AppError is logged and reported as a
generic 500 so internals never reach the client.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from shared.exceptions import AppError, RateLimitError

from .models import ErrorBody, ErrorResponse

logger = logging.getLogger(__name__)

# Leading loc entries that name where a value came from, not which field it is
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    429: "RATE_LIMITED",
}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=code, message=message, details=details or None))
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def validation_details(errors: list[dict[str, Any]]) -> dict[str, list[str]]:
    """
    Group pydantic errors by field path.

    `("body", "email")` becomes `"email"`; nested fields are dotted
    (`"days.0.title"`). An error on the whole body is keyed `"body"`.
    """
    details: dict[str, list[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES and len(loc) > 1:
            loc = loc[1:]
        path = ".".join(loc) or "body"
        details.setdefault(path, []).append(error.get("msg", "Invalid value"))
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(level, "%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)

    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}

    return error_response(exc.status_code, exc.code, exc.message, exc.details, headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        400,
        "VALIDATION_ERROR",
        "Validation failed",
        validation_details(list(exc.errors())),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "Request failed"
    return error_response(exc.status_code, code, message, headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

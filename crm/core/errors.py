"""Exception handlers that render every failure in the response envelope.

Error bodies share the success shape so clients read one structure:
``{"code": ..., "message": ..., "data": null, "details": {...}}``.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

ERROR_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "validation_error",
    429: "rate_limited",
    500: "internal_server_error",
}

# Location prefixes FastAPI adds to validation errors; clients only need the field path.
_REQUEST_SECTIONS = {"body", "query", "path", "header"}


def _as_details(value: Any) -> dict:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {"errors": value}
    return {"detail": str(value)}


def error_response(
    status_code: int,
    message: str | None = None,
    *,
    code: str | None = None,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    if message is None:
        try:
            message = HTTPStatus(status_code).phrase
        except ValueError:
            message = "Request failed"
    body = {
        "code": code or ERROR_CODES.get(status_code, "http_error"),
        "message": message,
        "data": None,
        "details": _as_details(details),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def _unpack_detail(detail: Any) -> tuple[str | None, str | None, Any]:
    """Split an ``HTTPException.detail`` into (code, message, details).

    Routers raise either a plain message or a dict carrying ``code``/``message``
    plus any extra context, e.g. the OTP failure reason.
    """
    if isinstance(detail, str):
        return None, detail, {"detail": detail}
    if isinstance(detail, dict):
        message = detail.get("message") or detail.get("detail")
        if "details" in detail:
            return detail.get("code"), message, detail["details"]
        extra = {k: v for k, v in detail.items() if k not in {"code", "message", "detail"}}
        return detail.get("code"), message, extra or ({"detail": message} if message else None)
    return None, None, detail


def _validation_message(errors: list[dict]) -> str:
    if not errors:
        return "Validation failed"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in _REQUEST_SECTIONS)
    msg = first.get("msg") or "Validation failed"
    return f"{field}: {msg}" if field else str(msg)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, message, details = _unpack_detail(exc.detail)
    return error_response(
        exc.status_code,
        message,
        code=code,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    return error_response(422, _validation_message(errors), details={"errors": errors})


async def handle_rate_limit(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    response = error_response(
        429,
        "Too many requests; slow down and retry later",
        details={"limit": exc.detail},
    )
    limiter = getattr(request.app.state, "limiter", None)
    view_limit = getattr(request.state, "view_rate_limit", None)
    if limiter is not None and view_limit is not None:
        response = limiter._inject_headers(response, view_limit)
    return response


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


_HANDLERS = (
    (StarletteHTTPException, handle_http_exception),
    (RequestValidationError, handle_validation_error),
    (RateLimitExceeded, handle_rate_limit),
    (Exception, handle_unexpected_error),
)


def register_exception_handlers(app: FastAPI) -> None:
    for exc_type, handler in _HANDLERS:
        app.add_exception_handler(exc_type, handler)

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any, Iterable

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

_SUCCESS_CODES = {200: "ok", 201: "created", 202: "accepted"}
_ENVELOPE_KEYS = {"code", "message"}
_DROPPED_HEADERS = {"content-length", "content-type"}


def envelope(data: Any, status_code: int = 200) -> dict[str, Any]:
    return {
        "code": _SUCCESS_CODES.get(status_code, "ok"),
        "message": HTTPStatus(status_code).phrase,
        "data": data,
        "details": {},
    }


def _already_enveloped(payload: Any) -> bool:
    return isinstance(payload, dict) and _ENVELOPE_KEYS <= payload.keys() and ("data" in payload or "details" in payload)


def _json_response(original: Response, content: dict[str, Any], status_code: int) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=content)
    for key, value in original.headers.items():
        if key.lower() not in _DROPPED_HEADERS:
            response.headers[key] = value
    return response


class ResponseEnvelopeMiddleware(BaseHTTPMiddleware):
    """Wrap successful JSON bodies as ``{code, message, data, details}``.

    Errors are already shaped by the exception handlers and pass through, as do
    non-JSON bodies and the OpenAPI document.
    """

    def __init__(self, app, exempt_paths: Iterable[str] = ()) -> None:
        super().__init__(app)
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request, call_next) -> Response:
        response = await call_next(request)
        if request.url.path in self.exempt_paths or not 200 <= response.status_code < 300:
            return response
        if response.status_code == 204:
            return _json_response(response, envelope(None), 200)
        if response.headers.get("content-type", "").split(";")[0] != "application/json":
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            return Response(
                content=body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )

        if _already_enveloped(payload):
            content = {"data": None, "details": {}, **payload}
        else:
            content = envelope(payload, response.status_code)
        return _json_response(response, content, response.status_code)


def register_response_envelope(app: FastAPI) -> None:
    exempt = [app.openapi_url] if app.openapi_url else []
    app.add_middleware(ResponseEnvelopeMiddleware, exempt_paths=exempt)

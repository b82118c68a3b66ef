"""Render gateway failures as JSON error envelopes.

OpenAI-compatible routes (`/v1/...`) answer with `{"error": {...}}`; native
routes answer with `{"success": false, "error": ..., "message": ...}`.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from models.errors import GatewayError

LOGGER = logging.getLogger(__name__)

OPENAI_PREFIX = "/v1/"


def error_response(
    request: Request,
    status_code: int,
    message: str,
    error_type: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    """Build the envelope that matches the surface the request came in on."""
    if request.url.path.startswith(OPENAI_PREFIX) or status_code == 401:
        error = {"message": message, "type": error_type}
        if details is not None:
            error["details"] = details
        content = {"error": error}
        if not request.url.path.startswith(OPENAI_PREFIX):
            content["success"] = False
    else:
        content = {"success": False, "error": message, "message": message}
        if details is not None:
            content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _type_for_status(status_code: int) -> str:
    return "server_error" if status_code >= 500 else "invalid_request_error"


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return error_response(request, exc.status_code, exc.message, exc.error_type, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return error_response(request, exc.status_code, str(exc.detail), _type_for_status(exc.status_code))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'Invalid request')}" if location else first.get("msg", "Invalid request")
    return error_response(request, 400, message, "invalid_request_error")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled error on %s", request.url.path)
    return error_response(request, 500, str(exc) or "Internal server error", "server_error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

"""API error handling middleware — consistent error responses.

Registers FastAPI exception handlers that convert domain exceptions into
standardised ``{"error": "<message>", "code": "<CODE>"}`` JSON responses.

Status code mapping:
- ``ValidationError`` and request body validation failures → 400
- ``AuthenticationError`` → 401
- ``ForbiddenError`` → 403
- ``NotFoundError`` → 404
- ``ConflictError`` → 409
- ``HTTPException`` → its own status code
- Any other ``Exception`` → 500 Internal Server Error

``RequestLogMiddleware`` wraps everything and logs one line per request.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from eventide.api.models import ErrorResponse
from eventide.core.logging import REQUEST_LOGGER, bind_request, get_user_context, reset_request
from eventide.errors import EventideError

logger = logging.getLogger(__name__)
request_logger = logging.getLogger(REQUEST_LOGGER)

_HTTP_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    503: "SERVICE_UNAVAILABLE",
}


def _error(status_code: int, message: str, code: str) -> JSONResponse:
    body = ErrorResponse(error=message, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _handle_eventide_error(
    request: Request,
    exc: EventideError,
) -> JSONResponse:
    """Return the status code carried by the domain error."""
    logger.info(
        "%s on %s %s: %s",
        exc.code,
        request.method,
        request.url.path,
        exc.message,
    )
    return _error(exc.status_code, exc.message, exc.code)


async def _handle_http_exception(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return _error(exc.status_code, str(exc.detail), code)


async def _handle_request_validation(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Return 400 with the first field error in readable form."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    else:
        message = "Invalid request"
    logger.info("Request validation failed on %s: %s", request.url.path, message)
    return _error(400, message, "VALIDATION_ERROR")


class CatchAllErrorMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that catches any unhandled exception and returns a 500.

    This sits above the Starlette exception handler layer, ensuring that
    even exceptions not caught by ``add_exception_handler`` are converted
    to the standard error body rather than bubbling up as raw 500s.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.error(
                "Unhandled exception on %s %s",
                request.method,
                request.url.path,
                exc_info=True,
            )
            return _error(500, "Internal server error", "INTERNAL_ERROR")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Bind the request context for logging and log one line per request.

    Registered outermost, so the line is written after error handling has
    produced the final status code.
    """

    async def dispatch(self, request: Request, call_next):
        token = bind_request(request.method, request.url.path)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            request_logger.info(
                "%s %s -> %d",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "status": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                    "user": get_user_context(),
                },
            )
            return response
        finally:
            reset_request(token)


def register_error_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI application.

    Call this from ``create_app()`` after constructing the ``FastAPI`` instance.
    """
    app.add_exception_handler(EventideError, _handle_eventide_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]
    app.add_middleware(CatchAllErrorMiddleware)
    app.add_middleware(RequestLogMiddleware)

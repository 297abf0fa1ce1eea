"""API error handling middleware: consistent error responses.

Registers FastAPI exception handlers that convert domain exceptions into
standardised ``{"error": {"code": "...", "message": "...", "provider": "..."}}``
JSON responses.

Status code mapping:
- ``InvalidRequestError`` (missing/invalid params, unknown city or airport) → 400
- ``RequestValidationError`` (unparseable query params) → 400
- ``StationNotFoundError`` → 404
- ``ProviderError`` (upstream failure) → 500, details logged server-side
- Any other ``Exception`` → 500 Internal Server Error
"""

from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from dzt_travel.api.models import ErrorDetail, ErrorResponse
from dzt_travel.core.logging import set_request_context
from dzt_travel.providers.errors import InvalidRequestError, ProviderError, StationNotFoundError

logger = logging.getLogger(__name__)


def _error(status_code: int, code: str, message: str, provider: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, provider=provider))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def _handle_invalid_request(
    request: Request,
    exc: InvalidRequestError,
) -> JSONResponse:
    """Return 400 for validation / value errors."""
    logger.info("Validation error on %s: %s", request.url.path, exc)
    return _error(400, "VALIDATION_ERROR", str(exc))


async def _handle_request_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Return 400 (not FastAPI's default 422) for unparseable query params."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "query")
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    message = "Invalid query parameters: " + "; ".join(problems)
    logger.info("Request validation error on %s: %s", request.url.path, message)
    return _error(400, "VALIDATION_ERROR", message)


async def _handle_station_not_found(
    request: Request,
    exc: StationNotFoundError,
) -> JSONResponse:
    """Return 404 when a station query matches no stop."""
    logger.info("Station not found on %s: %s", request.url.path, exc.query)
    return _error(404, "NOT_FOUND", str(exc))


async def _handle_provider_error(
    request: Request,
    exc: ProviderError,
) -> JSONResponse:
    """Return 500 with a generic message; the provider's details stay in the log."""
    logger.error(
        "Provider %s failed on %s: %s",
        exc.provider,
        request.url.path,
        exc.message,
        exc_info=exc,
    )
    return _error(
        500,
        "UPSTREAM_ERROR",
        f"Request to provider '{exc.provider}' failed",
        provider=exc.provider,
    )


class CatchAllErrorMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that catches any unhandled exception and returns a 500.

    This sits above the Starlette exception handler layer, ensuring that
    even exceptions not caught by ``add_exception_handler`` are converted
    to the standard error envelope rather than bubbling up as raw 500s.
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
            return _error(500, "INTERNAL_ERROR", "Internal server error")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id for log correlation and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            set_request_context(None)
        response.headers["X-Request-ID"] = request_id
        return response


def register_error_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI application.

    Call this from ``create_app()`` after constructing the ``FastAPI`` instance.

    Only the domain errors are mapped to 4xx; a stray ``ValueError`` or
    ``KeyError`` from malformed provider data falls through to the 500 path.
    """
    app.add_exception_handler(ProviderError, _handle_provider_error)  # type: ignore[arg-type]
    app.add_exception_handler(StationNotFoundError, _handle_station_not_found)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidRequestError, _handle_invalid_request)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        _handle_request_validation_error,  # type: ignore[arg-type]
    )
    app.add_middleware(CatchAllErrorMiddleware)
    app.add_middleware(RequestContextMiddleware)

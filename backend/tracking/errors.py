"""
Error taxonomy for the tracking service and its FastAPI handlers.

Every error response shares the envelope used by successful responses:

    {"success": false, "message": "...", "errors": [...], "error": "..."}

``errors`` carries field-level messages for validation failures and ``error``
carries the exception text, the latter only when running in development.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TrackingError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(
        self,
        message: str,
        errors: Optional[list[str]] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.errors = errors
        self.details = details
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, errors={self.errors!r})"


class ValidationError(TrackingError):
    """Missing, out-of-range or malformed client input."""

    status_code = 400


class NotFoundError(TrackingError):
    """Unknown IMEI on a device- or config-scoped read or delete."""

    status_code = 404


class StoreError(TrackingError):
    """Any failure raised by the persistence layer."""

    status_code = 500


def error_envelope(
    message: str,
    errors: Optional[list[str]] = None,
    details: Optional[dict[str, Any]] = None,
    exc: Optional[BaseException] = None,
    development: bool = False,
) -> dict[str, Any]:
    content: dict[str, Any] = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    if details:
        content.update(details)
    if development and exc is not None:
        cause = exc.__cause__ or exc
        content["error"] = str(cause)
    return content


def _is_development(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.is_development)


async def handle_tracking_error(request: Request, exc: TrackingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message,
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(
            exc.message,
            errors=exc.errors,
            details=exc.details,
            exc=exc,
            development=_is_development(request),
        ),
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        errors.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return JSONResponse(
        status_code=400,
        content=error_envelope("Validation failed", errors=errors),
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_envelope(
            "Internal server error",
            exc=exc,
            development=_is_development(request),
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TrackingError, handle_tracking_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_exception)

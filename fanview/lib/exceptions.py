"""Error taxonomy and the exception handlers that render it.

All error responses share the JSON envelope produced by ``error_envelope``.
The ``debug`` member is only included when ``expose_error_details`` is on.
"""

import logging
from typing import Any

from litestar import Request, Response
from litestar.exceptions import HTTPException, ValidationException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class FanviewError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[dict[str, Any]] | None = None,
        debug: Any = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        self.debug = debug
        super().__init__(self.message)


class ValidationError(FanviewError):
    """Missing field, wrong media type or file size."""

    status_code = HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class AuthenticationError(FanviewError):
    status_code = HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class PermissionDeniedError(FanviewError):
    status_code = HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(FanviewError):
    status_code = HTTP_404_NOT_FOUND
    default_message = "Not found"


class CreatorNotFoundError(NotFoundError):
    default_message = "Creator not found"


class ContentNotFoundError(NotFoundError):
    default_message = "Content not found"


class ConflictError(FanviewError):
    """Duplicate subscription, duplicate email and similar."""

    status_code = HTTP_409_CONFLICT
    default_message = "Conflict"


class RemoteStoreError(FanviewError):
    default_message = "Database operation failed"


def _expose_details(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.expose_error_details)


def error_envelope(
    request: Request,
    status_code: int,
    message: str,
    *,
    errors: list[dict[str, Any]] | None = None,
    debug: Any = None,
    headers: dict[str, str] | None = None,
) -> Response:
    """Build the JSON error response shared by every handler."""
    content: dict[str, Any] = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    if debug is not None and _expose_details(request):
        content["debug"] = debug
    return Response(
        content=content,
        status_code=status_code,
        media_type="application/json",
        headers=headers,
    )


def fanview_error_handler(request: Request, exc: FanviewError) -> Response:
    if exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return error_envelope(request, exc.status_code, exc.message, errors=exc.errors, debug=exc.debug)


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Render framework-raised HTTP errors in the shared envelope."""
    status_code = exc.status_code
    if status_code == HTTP_404_NOT_FOUND:
        message = "API endpoint not found"
    else:
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    errors = None
    if isinstance(exc, ValidationException) and isinstance(exc.extra, list):
        errors = [item for item in exc.extra if isinstance(item, dict)] or None

    return error_envelope(request, status_code, message, errors=errors, headers=exc.headers)


def remote_store_error_handler(request: Request, exc: SQLAlchemyError) -> Response:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return error_envelope(
        request,
        HTTP_500_INTERNAL_SERVER_ERROR,
        RemoteStoreError.default_message,
        debug={"error": str(exc), "type": type(exc).__name__},
    )


def filesystem_error_handler(request: Request, exc: OSError) -> Response:
    logger.exception("Filesystem error on %s %s", request.method, request.url.path)
    return error_envelope(
        request,
        HTTP_500_INTERNAL_SERVER_ERROR,
        "File storage operation failed",
        debug={"error": str(exc), "type": type(exc).__name__},
    )


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Log unexpected exceptions and answer with a generic 500."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_envelope(
        request,
        HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        debug={"error": str(exc), "type": type(exc).__name__},
    )


EXCEPTION_HANDLERS = {
    FanviewError: fanview_error_handler,
    HTTPException: http_exception_handler,
    SQLAlchemyError: remote_store_error_handler,
    OSError: filesystem_error_handler,
    Exception: internal_server_error_handler,
}

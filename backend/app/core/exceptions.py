"""
Error taxonomy for the publishing API and the handlers that render it.

Every error leaves the API as ``{"message": ..., "error": ..., "details": ...}``.
Storage and unexpected failures are logged and reported with a generic
message; their internals never reach the client.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class PublishingError(Exception):
    """Base exception for the publishing API."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class Unauthenticated(PublishingError):
    """No, invalid or expired session token."""

    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="unauthenticated",
            details=details,
        )


class Forbidden(PublishingError):
    """Authenticated, but the role or ownership does not allow the action."""

    def __init__(self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="forbidden",
            details=details,
        )


class NotFound(PublishingError):
    """Resource not found."""

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="not_found",
            details=details,
        )


class UserNotFound(NotFound):
    """The identity in a session no longer exists in storage."""

    def __init__(self, message: str = "User not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)
        self.error_code = "user_not_found"


class ValidationFailed(PublishingError):
    """Input failed validation."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_failed",
            details=details,
        )


class InvalidStatus(ValidationFailed):
    """Target article status is not a member of the status enum."""

    def __init__(self, message: str = "Invalid status", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)
        self.error_code = "invalid_status"


class Conflict(PublishingError):
    """Duplicate unique key."""

    def __init__(self, message: str = "Resource conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="conflict",
            details=details,
        )


class InvalidState(PublishingError):
    """Operation is not valid for the resource's current state."""

    def __init__(self, message: str = "Invalid resource state", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="invalid_state",
            details=details,
        )


class Internal(PublishingError):
    """Unexpected storage or runtime failure."""

    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


def _error_response(exc: PublishingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "message": exc.message,
            "error": exc.error_code,
            "details": exc.details,
        },
    )


async def publishing_error_handler(request: Request, exc: PublishingError):
    return _error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors into ``{"fields": {name: [messages]}}``."""
    fields: Dict[str, list] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        name = ".".join(loc) or "__root__"
        fields.setdefault(name, []).append(error.get("msg", "Invalid value"))
    return _error_response(ValidationFailed(details={"fields": fields}))


async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Storage error on {request.method} {request.url.path}")
    return _error_response(Internal())


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(Internal())


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error envelope on an application."""
    app.add_exception_handler(PublishingError, publishing_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

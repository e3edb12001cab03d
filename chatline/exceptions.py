"""
Exception hierarchy for the chatline server.

Every domain error derives from ChatlineError, carries an ErrorContext and
logs itself once at construction. Authentication failures deliberately share
one public message regardless of cause; the cause is kept in `details` for
the logs only.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information attached to an error for logging and responses."""

    user_id: str | None = None
    connection_id: str | None = None
    path: str | None = None
    event_type: str | None = None
    request_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "user_id": self.user_id,
            "connection_id": self.connection_id,
            "path": self.path,
            "event_type": self.event_type,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class ChatlineError(Exception):
    """
    Base exception for all chatline errors.

    Provides structured error handling with context and metadata.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize a chatline error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-facing error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now(UTC)

        self._log_error()

    def _log_error(self) -> None:
        log_method = getattr(logger, self.log_level)
        log_method(
            "Chatline error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class AuthenticationError(ChatlineError):
    """Authentication and authorization errors."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, auth_type: str = "unknown", **kwargs):
        super().__init__(message, context, **kwargs)
        self.auth_type = auth_type
        self.details["auth_type"] = auth_type


class InvalidTokenError(AuthenticationError):
    """A session token failed verification. One variant for every cause."""

    PUBLIC_MESSAGE = "Invalid token"

    def __init__(self, reason: str = "unknown", context: ErrorContext | None = None, **kwargs):
        kwargs.setdefault("user_friendly", self.PUBLIC_MESSAGE)
        super().__init__(self.PUBLIC_MESSAGE, context, auth_type="token", **kwargs)
        self.details["reason"] = reason


class ConnectionRejectedError(AuthenticationError):
    """A realtime handshake was refused. Missing and invalid credentials look identical."""

    PUBLIC_MESSAGE = "Authentication failed"

    def __init__(self, reason: str = "unknown", context: ErrorContext | None = None, **kwargs):
        kwargs.setdefault("user_friendly", self.PUBLIC_MESSAGE)
        super().__init__(self.PUBLIC_MESSAGE, context, auth_type="websocket", **kwargs)
        self.details["reason"] = reason


class DatabaseError(ChatlineError):
    """Database operation errors."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        operation: str = "unknown",
        table: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.operation = operation
        self.table = table
        self.details["operation"] = operation
        if table:
            self.details["table"] = table


class ValidationError(ChatlineError):
    """Data validation errors."""

    log_level = "info"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        field: str | None = None,
        value: Any | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.field = field
        self.value = value
        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)


class WeakInputError(ValidationError):
    """Input rejected for being too weak, e.g. a password below the minimum length."""


class ConfigurationError(ChatlineError):
    """Configuration and setup errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key


class ResourceNotFoundError(ChatlineError):
    """Resource not found errors."""

    log_level = "info"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id
        if resource_type:
            self.details["resource_type"] = resource_type
        if resource_id:
            self.details["resource_id"] = resource_id


class ResourceConflictError(ChatlineError):
    """A unique resource (email, username) is already taken."""

    log_level = "info"

    def __init__(self, message: str, context: ErrorContext | None = None, field: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.field = field
        if field:
            self.details["field"] = field


class LoggedHTTPException(HTTPException):
    """HTTPException that records itself with its request context when raised."""

    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        context: ErrorContext | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.context = context or ErrorContext()
        log_method = logger.warning if status_code < 500 else logger.error
        log_method(
            "HTTP error raised",
            status_code=status_code,
            detail=detail,
            context=self.context.to_dict(),
        )


def create_error_context(**kwargs) -> ErrorContext:
    """Create an error context with the given parameters."""
    return ErrorContext(**kwargs)

"""
Error codes and client-facing messages shared by the HTTP API and the
realtime gateway.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Machine-readable error codes sent to clients."""

    AUTHENTICATION_FAILED = "authentication_failed"
    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"
    RESOURCE_NOT_FOUND = "resource_not_found"
    RESOURCE_CONFLICT = "resource_conflict"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    DATABASE_ERROR = "database_error"
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"

    # Realtime frames
    INVALID_FORMAT = "invalid_format"
    UNKNOWN_EVENT = "unknown_event"
    INVALID_PAYLOAD = "invalid_payload"


class ErrorSeverity(Enum):
    """How loudly a failed request is logged."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def create_standard_error_response(
    error_type: ErrorType,
    message: str,
    details: dict[str, Any] | None = None,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
) -> dict[str, Any]:
    """
    Body of a failed HTTP response.

    Same envelope as successful responses ({"success", "message"}) with an
    extra "error" object; details are left out when empty.
    """
    error: dict[str, Any] = {
        "type": error_type.value,
        "message": message,
        "severity": severity.value,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if details:
        error["details"] = details
    return {"success": False, "message": message, "error": error}


def create_websocket_error_response(
    error_type: ErrorType,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Payload of an `error` realtime event; details (e.g. retryAfter) are merged in."""
    payload: dict[str, Any] = {"message": message, "code": error_type.value}
    if details:
        payload.update(details)
    return payload


class ErrorMessages:
    UNAUTHORIZED = "Unauthorized"
    INVALID_CREDENTIALS = "Invalid email or password"

    INVALID_INPUT = "Invalid input provided"
    INVALID_JSON = "Malformed event frame"
    UNKNOWN_EVENT = "Unknown event"
    MESSAGE_EMPTY = "Message must have text or an image"
    MESSAGE_TO_SELF = "Cannot send a message to yourself"

    USER_NOT_FOUND = "User not found"
    EMAIL_TAKEN = "Email already registered"
    USERNAME_TAKEN = "Username already taken"

    INTERNAL_ERROR = "An internal error occurred"
    TOO_MANY_REQUESTS = "Too many events. Please slow down."

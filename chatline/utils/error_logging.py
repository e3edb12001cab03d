"""
Error logging utilities for the chatline server.

Helpers that log with context before raising, and that build
ErrorContext objects from HTTP requests and websocket connections.
"""

from typing import Any, NoReturn

from fastapi import Request
from fastapi.websockets import WebSocket

from ..exceptions import ChatlineError, ErrorContext, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def log_and_raise(
    exception_class: type[ChatlineError],
    message: str,
    context: ErrorContext | None = None,
    details: dict[str, Any] | None = None,
    user_friendly: str | None = None,
    logger_name: str | None = None,
) -> NoReturn:
    """
    Log an error and raise a chatline exception.

    Args:
        exception_class: The ChatlineError subclass to raise
        message: Technical error message
        context: Error context information
        details: Additional error details
        user_friendly: User-facing error message
        logger_name: Specific logger name to use (defaults to current module)

    Raises:
        The specified chatline exception
    """
    error_logger = get_logger(logger_name) if logger_name else logger

    if context is None:
        context = create_error_context()

    error_logger.debug(
        "Raising error",
        error_type=exception_class.__name__,
        error_message=message,
        details=details or {},
    )

    raise exception_class(
        message=message,
        context=context,
        details=details,
        user_friendly=user_friendly,
    )


def create_context_from_request(request: Request | None) -> ErrorContext:
    """
    Create error context from a FastAPI request.

    Args:
        request: FastAPI Request object (may be None in direct unit calls)

    Returns:
        ErrorContext with request information
    """
    if request is None:
        return create_error_context(metadata={"connection_type": "http"})

    metadata = {
        "method": request.method,
        "connection_type": "http",
        "user_agent": request.headers.get("user-agent", ""),
        "remote_addr": request.client.host if request.client else "",
    }

    user_id = getattr(request.state, "user_id", None)

    return create_error_context(
        user_id=str(user_id) if user_id else None,
        path=request.url.path,
        request_id=request.headers.get("x-correlation-id"),
        metadata=metadata,
    )


def create_context_from_websocket(websocket: WebSocket, connection_id: str | None = None) -> ErrorContext:
    """
    Create error context from a websocket connection.

    Args:
        websocket: FastAPI WebSocket object
        connection_id: Live connection handle, if one was assigned

    Returns:
        ErrorContext with websocket information
    """
    metadata = {
        "connection_type": "websocket",
        "user_agent": websocket.headers.get("user-agent", ""),
        "remote_addr": websocket.client.host if websocket.client else "",
    }

    user_id = getattr(websocket.state, "user_id", None)

    return create_error_context(
        user_id=str(user_id) if user_id else None,
        connection_id=connection_id,
        path=websocket.url.path,
        metadata=metadata,
    )

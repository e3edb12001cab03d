"""
Context management utilities for structured logging.

Binds per-request (and per-connection) values into structlog's contextvars so
every log entry emitted while handling that request carries them.
"""

import uuid

from structlog.contextvars import bind_contextvars, clear_contextvars, unbind_contextvars


def bind_request_context(
    correlation_id: str | None = None,
    user_id: str | None = None,
    connection_id: str | None = None,
    request_id: str | None = None,
    **kwargs,
) -> None:
    """
    Bind request context to the current logging context.

    Args:
        correlation_id: Unique correlation ID for the request (generated if omitted)
        user_id: Authenticated identity id if available
        connection_id: Live connection handle for websocket traffic
        request_id: Request ID if available
        **kwargs: Additional context variables
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    context_vars = {
        "correlation_id": correlation_id,
        "user_id": user_id,
        "connection_id": connection_id,
        "request_id": request_id,
        **kwargs,
    }

    # Remove None values
    context_vars = {k: v for k, v in context_vars.items() if v is not None}

    bind_contextvars(**context_vars)


def unbind_request_keys(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    unbind_contextvars(*keys)


def clear_request_context() -> None:
    """Clear the current request context from logging."""
    clear_contextvars()

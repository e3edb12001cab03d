"""
Correlation middleware for request tracing and logging context.

Every HTTP request and websocket handshake gets a correlation id (taken from
the X-Correlation-ID header or generated) bound into the structlog context
for its whole duration. HTTP responses echo the id back in the same header.

This is pure ASGI middleware rather than BaseHTTPMiddleware so it also sees
websocket scopes.
"""

import uuid
from typing import cast

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from ..structured_logging.logging_context import bind_request_context, clear_request_context

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _get_header(scope: Scope, name: str) -> str | None:
    """Return first header value for name (case-insensitive) from ASGI scope."""
    name_lower = name.lower().encode()
    for key, value in scope.get("headers", []):
        if key.lower() == name_lower:
            return cast(str, value.decode("utf-8", errors="replace"))
    return None


class CorrelationMiddleware:  # pylint: disable=too-few-public-methods
    """Binds a correlation id and request details to the logging context."""

    def __init__(self, app: ASGIApp, correlation_header: str = CORRELATION_HEADER) -> None:
        self.app = app
        self.correlation_header = correlation_header

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        correlation_id = _get_header(scope, self.correlation_header) or str(uuid.uuid4())
        path = scope.get("path", "")
        client = scope.get("client")
        remote_addr = client[0] if client else "unknown"

        bind_request_context(
            correlation_id=correlation_id,
            request_id=path,
            remote_addr=remote_addr,
            connection_type=scope["type"],
            method=scope.get("method", "WEBSOCKET"),
            path=path,
        )

        if scope["type"] == "websocket":
            try:
                await self.app(scope, receive, send)
            finally:
                clear_request_context()
            return

        logger.debug("Request started", method=scope.get("method", ""), path=path, remote_addr=remote_addr)
        status_code = 500

        async def send_with_correlation_header(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.append(self.correlation_header, correlation_id)
                status_code = message.get("status", 500)
            await send(message)

        try:
            await self.app(scope, receive, send_with_correlation_header)
            logger.info("Request completed", method=scope.get("method", ""), path=path, status_code=status_code)
        except Exception as e:
            log_exception_once(logger, "error", "Request failed", exc=e, path=path, exc_info=True)
            raise
        finally:
            clear_request_context()

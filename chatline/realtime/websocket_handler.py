"""
Receive loop for realtime websocket connections.

Frames from one connection are handled strictly in order: the next frame is
not read until the handler for the previous one has finished, and the
disconnect side effects run only after the in-flight handler completes.
"""

from fastapi import WebSocket, WebSocketDisconnect

from ..structured_logging.enhanced_logging_config import get_logger
from ..structured_logging.logging_context import bind_request_context, unbind_request_keys
from .connection_models import ConnectionContext
from .gateway import RealtimeGateway

logger = get_logger(__name__)


async def _receive_frame(websocket: WebSocket) -> str:
    """Next text frame; binary frames are decoded as UTF-8."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(code=message.get("code", 1000), reason=message.get("reason"))
    text = message.get("text")
    if text is not None:
        return text
    return (message.get("bytes") or b"").decode("utf-8", errors="replace")


async def _handle_websocket_message_loop(websocket: WebSocket, context: ConnectionContext, gateway: RealtimeGateway):
    while True:
        try:
            raw = await _receive_frame(websocket)
        except WebSocketDisconnect as e:
            logger.info("WebSocket disconnected", connection_id=context.handle, code=e.code)
            break
        except RuntimeError as e:
            # Raised by Starlette once the socket was closed from our side (e.g. superseded)
            logger.info("WebSocket no longer readable", connection_id=context.handle, error=str(e))
            break

        await gateway.handle_frame(context, raw)


async def handle_websocket_connection(websocket: WebSocket, gateway: RealtimeGateway) -> None:
    """
    Run one realtime connection from handshake to teardown.

    Args:
        websocket: The incoming websocket (not yet accepted)
        gateway: The application's realtime gateway
    """
    context = await gateway.connect(websocket)
    if context is None:
        return

    bind_request_context(user_id=context.identity_id, connection_id=context.handle)
    try:
        await _handle_websocket_message_loop(websocket, context, gateway)
    except Exception as e:
        logger.error(
            "Error in realtime message loop",
            connection_id=context.handle,
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        raise
    finally:
        await gateway.disconnect(context)
        unbind_request_keys("user_id", "connection_id", "correlation_id")

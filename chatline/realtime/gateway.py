"""
Realtime gateway: presence broadcasts, typing relay and delivery fan-out.

The gateway owns the presence registry, the per-identity rooms and every
live connection context. All of it is touched only from the event loop;
each connection's frames are handled one at a time, in arrival order.

Emitted events: userOnline, userOffline, typingStatus, messageDelivered,
messageRead, receiveMessage, error.
Accepted events: sendMessage, typing, messageDelivered, messageRead.
"""

import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError

from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..exceptions import ConnectionRejectedError
from ..schemas.realtime import ReceiptPayload, SendMessagePayload, TypingPayload
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import create_context_from_websocket
from ..utils.time_utils import utc_now_z
from .connection_auth import ConnectionAuthenticator, Handshake
from .connection_models import ConnectionContext
from .connection_state_machine import ConnectionLifecycle
from .envelope import EnvelopeError, SequenceCounter, build_event, dump_event, parse_inbound
from .presence_registry import PresenceRegistry
from .rate_limiter import EventRateLimiter

logger = get_logger(__name__)

# Close codes
AUTH_FAILED_CLOSE_CODE = status.WS_1008_POLICY_VIOLATION
SUPERSEDED_CLOSE_CODE = 4000
SHUTDOWN_CLOSE_CODE = status.WS_1001_GOING_AWAY

# Outbound event names
USER_ONLINE = "userOnline"
USER_OFFLINE = "userOffline"
TYPING_STATUS = "typingStatus"
MESSAGE_DELIVERED = "messageDelivered"
MESSAGE_READ = "messageRead"
RECEIVE_MESSAGE = "receiveMessage"
ERROR = "error"

# Inbound event names
SEND_MESSAGE = "sendMessage"
TYPING = "typing"

EventHandler = Callable[[ConnectionContext, dict[str, Any]], Awaitable[None]]

_SEND_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


class RealtimeGateway:
    """Connection lifecycle and event routing for the realtime channel."""

    def __init__(
        self,
        authenticator: ConnectionAuthenticator,
        registry: PresenceRegistry | None = None,
        rate_limiter: EventRateLimiter | None = None,
        *,
        notify_on_rate_limit: bool = False,
        max_message_length: int = 2000,
    ) -> None:
        self.authenticator = authenticator
        self.registry = registry if registry is not None else PresenceRegistry()
        self.rate_limiter = rate_limiter if rate_limiter is not None else EventRateLimiter()
        self.notify_on_rate_limit = notify_on_rate_limit
        self.max_message_length = max_message_length

        self.connections: dict[str, ConnectionContext] = {}
        self.rooms: dict[str, set[str]] = {}
        self._sequence = SequenceCounter()
        self._handlers: dict[str, EventHandler] = {
            TYPING: self.handle_typing,
            MESSAGE_DELIVERED: self.handle_message_delivered,
            MESSAGE_READ: self.handle_message_read,
            SEND_MESSAGE: self.handle_send_message,
        }

    # Lifecycle

    async def connect(self, websocket: WebSocket) -> ConnectionContext | None:
        """
        Authenticate and admit a new connection.

        On rejection the socket is closed before accept with a policy
        violation code and the generic reason; nothing is broadcast.

        Returns:
            The connection context, or None if the handshake was refused
        """
        handle = str(uuid.uuid4())
        lifecycle = ConnectionLifecycle(handle)
        handshake = Handshake.from_websocket(websocket)

        try:
            identity = self.authenticator.authenticate(
                handshake, context=create_context_from_websocket(websocket, handle)
            )
        except ConnectionRejectedError as e:
            lifecycle.reject(reason=e.details.get("reason", "unknown"))
            await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason=ConnectionRejectedError.PUBLIC_MESSAGE)
            return None

        await websocket.accept(subprotocol=handshake.subprotocol)
        lifecycle.authenticate(user_id=identity.id)
        websocket.state.user_id = identity.id

        context = ConnectionContext(handle=handle, identity=identity, websocket=websocket, lifecycle=lifecycle)
        self.connections[handle] = context
        self._join_room(identity.id, handle)

        superseded = self.registry.register(identity.id, handle)
        if superseded is not None:
            await self._close_superseded(superseded)

        logger.info("Realtime connection established", user_id=identity.id, connection_id=handle)
        await self.broadcast(USER_ONLINE, {"userId": identity.id, "timestamp": utc_now_z()}, exclude={handle})
        return context

    async def disconnect(self, context: ConnectionContext) -> None:
        """
        Tear down a connection. Safe to call more than once.

        userOffline is broadcast only if this connection still owned the
        identity's presence entry.
        """
        if context.lifecycle.is_closed:
            return
        context.lifecycle.disconnect()

        self.connections.pop(context.handle, None)
        context.rate_window = None
        identity_id = context.identity_id
        if identity_id is None:
            return

        self._leave_room(identity_id, context.handle)
        removed = self.registry.unregister(identity_id, context.handle)

        logger.info(
            "Realtime connection closed",
            user_id=identity_id,
            connection_id=context.handle,
            presence_removed=removed,
            events_received=context.events_received,
            events_dropped=context.events_dropped,
        )
        if removed:
            await self.broadcast(
                USER_OFFLINE, {"userId": identity_id, "timestamp": utc_now_z()}, exclude={context.handle}
            )

    async def shutdown(self) -> None:
        """Close every live connection and forget all presence."""
        for context in list(self.connections.values()):
            try:
                await context.websocket.close(code=SHUTDOWN_CLOSE_CODE)
            except _SEND_ERRORS as e:
                logger.debug("Close during shutdown failed", connection_id=context.handle, error=str(e))
            if not context.lifecycle.is_closed:
                context.lifecycle.disconnect()
        self.connections.clear()
        self.rooms.clear()
        self.registry.clear()
        logger.info("Realtime gateway shut down")

    # Inbound

    async def handle_frame(self, context: ConnectionContext, raw: str) -> None:
        """
        Process one inbound frame from `context`.

        The rate limiter is consulted before anything else; over-limit frames
        are dropped without being parsed.
        """
        context.events_received += 1
        if not self.rate_limiter.check(context):
            context.events_dropped += 1
            if self.notify_on_rate_limit:
                await self._send_error(
                    context,
                    ErrorType.RATE_LIMIT_EXCEEDED,
                    ErrorMessages.TOO_MANY_REQUESTS,
                    {"retryAfter": round(self.rate_limiter.retry_after(context), 3)},
                )
            return

        try:
            event_type, data = parse_inbound(raw)
        except EnvelopeError as e:
            logger.info("Malformed realtime frame", connection_id=context.handle, error=str(e))
            await self._send_error(context, ErrorType.INVALID_FORMAT, ErrorMessages.INVALID_JSON)
            return

        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info("Unknown realtime event", connection_id=context.handle, event_type=event_type)
            await self._send_error(context, ErrorType.UNKNOWN_EVENT, ErrorMessages.UNKNOWN_EVENT, {"event": event_type})
            return

        try:
            await handler(context, data)
        except PydanticValidationError as e:
            logger.info(
                "Invalid realtime payload",
                connection_id=context.handle,
                event_type=event_type,
                error_count=e.error_count(),
            )
            await self._send_error(
                context, ErrorType.INVALID_PAYLOAD, ErrorMessages.INVALID_INPUT, {"event": event_type}
            )

    async def handle_typing(self, context: ConnectionContext, data: dict[str, Any]) -> None:
        """Relay a typing indicator to the receiver's connection only."""
        payload = TypingPayload.model_validate(data)
        assert context.identity is not None
        target = self.registry.lookup(payload.receiver_id)
        if target is None:
            logger.debug("Typing receiver offline", user_id=context.identity.id, receiver_id=payload.receiver_id)
            return
        await self._send_to_handle(
            target, TYPING_STATUS, {"userId": context.identity.id, "isTyping": payload.is_typing}
        )

    async def handle_message_delivered(self, context: ConnectionContext, data: dict[str, Any]) -> None:
        await self._relay_receipt(context, MESSAGE_DELIVERED, data)

    async def handle_message_read(self, context: ConnectionContext, data: dict[str, Any]) -> None:
        await self._relay_receipt(context, MESSAGE_READ, data)

    async def _relay_receipt(self, context: ConnectionContext, event_type: str, data: dict[str, Any]) -> None:
        """
        Forward a delivery/read receipt.

        Addressed to the original sender's room when the client names it;
        otherwise broadcast to every other connection.
        """
        payload = ReceiptPayload.model_validate(data)
        assert context.identity is not None
        body = {"messageId": payload.message_id, "userId": context.identity.id}
        if payload.sender_id:
            await self.emit_to_room(payload.sender_id, event_type, body)
        else:
            await self.broadcast(event_type, body, exclude={context.handle})

    async def handle_send_message(self, context: ConnectionContext, data: dict[str, Any]) -> None:
        """
        Live relay of a message to the receiver's connection.

        Nothing is persisted here; durable sends go through the REST API,
        which calls deliver_message() after committing.
        """
        payload = SendMessagePayload.model_validate(data)
        assert context.identity is not None
        if not payload.text and not payload.image:
            await self._send_error(
                context, ErrorType.INVALID_PAYLOAD, ErrorMessages.MESSAGE_EMPTY, {"event": SEND_MESSAGE}
            )
            return
        if payload.text and len(payload.text) > self.max_message_length:
            await self._send_error(
                context,
                ErrorType.INVALID_PAYLOAD,
                f"Message text cannot exceed {self.max_message_length} characters",
                {"event": SEND_MESSAGE},
            )
            return

        logger.debug("sendMessage received", user_id=context.identity.id, receiver_id=payload.receiver_id)
        target = self.registry.lookup(payload.receiver_id)
        if target is None:
            return

        body: dict[str, Any] = {
            "senderId": context.identity.id,
            "receiverId": payload.receiver_id,
            "createdAt": utc_now_z(),
        }
        if payload.text:
            body["text"] = payload.text
        if payload.image:
            body["image"] = payload.image
        await self._send_to_handle(target, RECEIVE_MESSAGE, body)

    # Outbound

    async def deliver_message(self, receiver_id: str, message: dict[str, Any]) -> int:
        """
        Push a persisted message to the receiver as `receiveMessage`.

        Returns:
            Number of connections the event was written to
        """
        return await self.emit_to_room(receiver_id, RECEIVE_MESSAGE, message)

    async def emit_to_room(self, identity_id: str, event_type: str, data: dict[str, Any]) -> int:
        """Send to every connection in the identity's private room."""
        delivered = 0
        for handle in list(self.rooms.get(identity_id, ())):
            if await self._send_to_handle(handle, event_type, data):
                delivered += 1
        return delivered

    async def broadcast(self, event_type: str, data: dict[str, Any], exclude: Iterable[str] = ()) -> int:
        """Send to every authenticated connection not in `exclude`."""
        excluded = set(exclude)
        delivered = 0
        for context in list(self.connections.values()):
            if context.handle in excluded or not context.lifecycle.is_authenticated:
                continue
            if await self._send(context, event_type, data):
                delivered += 1
        return delivered

    async def _send_to_handle(self, handle: str, event_type: str, data: dict[str, Any]) -> bool:
        context = self.connections.get(handle)
        if context is None:
            return False
        return await self._send(context, event_type, data)

    async def _send(self, context: ConnectionContext, event_type: str, data: dict[str, Any]) -> bool:
        event = build_event(event_type, data, sequence_number=self._sequence.next())
        try:
            await context.websocket.send_text(dump_event(event))
        except _SEND_ERRORS as e:
            logger.debug(
                "Realtime send failed",
                connection_id=context.handle,
                event_type=event_type,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        return True

    async def _send_error(
        self,
        context: ConnectionContext,
        error_type: ErrorType,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        await self._send(context, ERROR, create_websocket_error_response(error_type, message, details))

    async def _close_superseded(self, handle: str) -> None:
        context = self.connections.get(handle)
        if context is None:
            return
        try:
            await context.websocket.close(code=SUPERSEDED_CLOSE_CODE, reason="Superseded by a newer connection")
        except _SEND_ERRORS as e:
            logger.debug("Closing superseded connection failed", connection_id=handle, error=str(e))

    # Rooms

    def _join_room(self, identity_id: str, handle: str) -> None:
        self.rooms.setdefault(identity_id, set()).add(handle)

    def _leave_room(self, identity_id: str, handle: str) -> None:
        members = self.rooms.get(identity_id)
        if members is None:
            return
        members.discard(handle)
        if not members:
            del self.rooms[identity_id]

    def get_stats(self) -> dict[str, Any]:
        return {
            "connections": len(self.connections),
            "online_users": len(self.registry),
            "rooms": len(self.rooms),
            "rate_limit": {
                "capacity": self.rate_limiter.capacity,
                "window_seconds": self.rate_limiter.window_seconds,
            },
        }

"""
Data models for live realtime connections.

The rate-limit window lives on the connection context, so it is created
with the first event and disappears with the connection.
"""

import time
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket

from ..auth.token_service import Identity
from .connection_state_machine import ConnectionLifecycle


@dataclass
class RateLimitWindow:
    """Fixed-window counter for one connection."""

    count: int
    reset_at: float


@dataclass
class ConnectionContext:
    """
    Per-connection state for an authenticated websocket.

    `identity` is fixed for the lifetime of the connection.
    """

    handle: str
    identity: Identity | None
    websocket: WebSocket | Any
    lifecycle: ConnectionLifecycle
    connected_at: float = field(default_factory=time.time)
    rate_window: RateLimitWindow | None = None
    events_received: int = 0
    events_dropped: int = 0

    @property
    def identity_id(self) -> str | None:
        return self.identity.id if self.identity else None

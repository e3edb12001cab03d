"""
Lifecycle state machine for a single realtime connection.

States:
- connecting: transport open, credentials not yet checked
- authenticated: identity attached, events accepted
- disconnected: terminal

Transitions:
- connecting → authenticated: authenticate
- connecting → disconnected: reject (authentication failed)
- authenticated → disconnected: disconnect

Anything else raises statemachine.exceptions.TransitionNotAllowed.
"""

from datetime import UTC, datetime
from typing import Any

from statemachine import State, StateMachine

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ConnectionLifecycle(StateMachine):
    """State machine for one websocket connection."""

    connecting = State("Connecting", initial=True)
    authenticated = State("Authenticated")
    disconnected = State("Disconnected", final=True)

    authenticate = connecting.to(authenticated)
    reject = connecting.to(disconnected)
    disconnect = authenticated.to(disconnected)

    def __init__(self, connection_id: str):
        # Attributes must exist before super().__init__(), which enters the initial state
        self.connection_id = connection_id
        self.user_id: str | None = None
        self.authenticated_at: datetime | None = None
        self.disconnected_at: datetime | None = None
        self.rejection_reason: str | None = None

        super().__init__()

    def on_enter_state(self, state: State, event: Any = None, **kwargs) -> None:
        logger.debug(
            "Connection state transition",
            connection_id=self.connection_id,
            trigger_event=str(event) if event else "initial",
            to_state=state.id,
        )

    def on_authenticate(self, user_id: str) -> None:
        self.user_id = user_id
        self.authenticated_at = datetime.now(UTC)

    def on_reject(self, reason: str = "unknown") -> None:
        self.rejection_reason = reason
        self.disconnected_at = datetime.now(UTC)

    def on_disconnect(self) -> None:
        self.disconnected_at = datetime.now(UTC)

    @property
    def is_authenticated(self) -> bool:
        return self.current_state.id == "authenticated"

    @property
    def is_closed(self) -> bool:
        return self.current_state.id == "disconnected"

    def get_stats(self) -> dict[str, Any]:
        """Snapshot for diagnostics endpoints."""
        return {
            "connection_id": self.connection_id,
            "state": self.current_state.id,
            "user_id": self.user_id,
            "authenticated_at": self.authenticated_at.isoformat() if self.authenticated_at else None,
            "disconnected_at": self.disconnected_at.isoformat() if self.disconnected_at else None,
        }

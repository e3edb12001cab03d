"""
Per-connection event rate limiting.

A fixed window: the first event opens a window of `window_seconds`; up to
`capacity` events are admitted inside it; everything after that is refused
until the window expires. The window is stored on the connection context,
so it never outlives the connection.
"""

import time
from collections.abc import Callable
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import ConnectionContext, RateLimitWindow

logger = get_logger(__name__)

DEFAULT_CAPACITY = 10
DEFAULT_WINDOW_SECONDS = 60.0


class EventRateLimiter:
    """
    Fixed-window limiter for inbound realtime events.

    The clock is injectable so tests can move time without sleeping.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            capacity: Events admitted per window (default: 10)
            window_seconds: Window length in seconds (default: 60)
            clock: Monotonic time source in seconds
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.capacity = capacity
        self.window_seconds = window_seconds
        self._clock = clock

    def check(self, context: ConnectionContext) -> bool:
        """
        Admit or refuse one event from the connection.

        Args:
            context: The emitting connection

        Returns:
            bool: True if the event may be processed, False if it must be dropped
        """
        if context.identity is None:
            return True

        now = self._clock()
        window = context.rate_window

        if window is None or now >= window.reset_at:
            context.rate_window = RateLimitWindow(count=1, reset_at=now + self.window_seconds)
            return True

        if window.count < self.capacity:
            window.count += 1
            return True

        logger.warning(
            "Event rate limit exceeded",
            user_id=context.identity.id,
            connection_id=context.handle,
            count=window.count,
            capacity=self.capacity,
            retry_after=round(window.reset_at - now, 3),
        )
        return False

    def retry_after(self, context: ConnectionContext) -> float:
        """Seconds until the connection's current window resets (0 when not limited)."""
        window = context.rate_window
        if window is None:
            return 0.0
        return max(0.0, window.reset_at - self._clock())

    def get_stats(self, context: ConnectionContext) -> dict[str, Any]:
        """
        Rate limit information for one connection.

        Returns:
            dict: count, capacity, remaining events and seconds until reset
        """
        window = context.rate_window
        now = self._clock()
        if window is None or now >= window.reset_at:
            return {
                "count": 0,
                "capacity": self.capacity,
                "remaining": self.capacity,
                "window_seconds": self.window_seconds,
                "reset_in": 0.0,
            }
        return {
            "count": window.count,
            "capacity": self.capacity,
            "remaining": max(0, self.capacity - window.count),
            "window_seconds": self.window_seconds,
            "reset_in": window.reset_at - now,
        }

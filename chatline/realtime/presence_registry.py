"""
Presence registry: who is online, and through which connection.

One slot per identity. Registering a second connection for the same
identity supersedes the first; removal can be guarded by handle so a stale
connection's teardown never evicts its successor.

Mutated only from the event loop thread, so no locking is needed.
"""

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class PresenceRegistry:
    """Mapping from identity id to its live connection handle."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def register(self, identity_id: str, handle: str) -> str | None:
        """
        Record `handle` as the live connection for `identity_id`.

        Returns:
            The superseded handle if a different one was registered, else None
        """
        previous = self._entries.get(identity_id)
        self._entries[identity_id] = handle
        if previous is not None and previous != handle:
            logger.info(
                "Presence entry superseded",
                user_id=identity_id,
                connection_id=handle,
                previous_connection_id=previous,
            )
            return previous
        logger.debug("Presence entry registered", user_id=identity_id, connection_id=handle)
        return None

    def unregister(self, identity_id: str, handle: str | None = None) -> bool:
        """
        Remove the entry for `identity_id`.

        When `handle` is given the entry is removed only if it still maps to
        that handle. Absent entries are a no-op.

        Returns:
            True if an entry was removed
        """
        current = self._entries.get(identity_id)
        if current is None:
            return False
        if handle is not None and current != handle:
            logger.debug(
                "Presence removal skipped - entry belongs to a newer connection",
                user_id=identity_id,
                connection_id=handle,
                current_connection_id=current,
            )
            return False
        del self._entries[identity_id]
        logger.debug("Presence entry removed", user_id=identity_id, connection_id=current)
        return True

    def lookup(self, identity_id: str) -> str | None:
        return self._entries.get(identity_id)

    def is_online(self, identity_id: str) -> bool:
        return identity_id in self._entries

    def all_identities(self) -> set[str]:
        """Snapshot of every identity currently online."""
        return set(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity_id: object) -> bool:
        return identity_id in self._entries

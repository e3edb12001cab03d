"""
Tests for the presence registry.
"""

from chatline.realtime.presence_registry import PresenceRegistry


class TestPresenceRegistry:
    """One slot per identity, guarded removal."""

    def test_register_and_lookup(self):
        registry = PresenceRegistry()

        assert registry.register("alice", "conn-1") is None
        assert registry.lookup("alice") == "conn-1"
        assert registry.is_online("alice")
        assert "alice" in registry
        assert len(registry) == 1

    def test_lookup_unknown_identity(self):
        assert PresenceRegistry().lookup("nobody") is None

    def test_second_register_supersedes_first(self):
        """Last writer wins and the displaced handle is reported."""
        registry = PresenceRegistry()
        registry.register("alice", "conn-1")

        assert registry.register("alice", "conn-2") == "conn-1"
        assert registry.lookup("alice") == "conn-2"
        assert len(registry) == 1

    def test_reregister_same_handle_is_not_superseding(self):
        registry = PresenceRegistry()
        registry.register("alice", "conn-1")
        assert registry.register("alice", "conn-1") is None

    def test_unregister_removes_entry(self):
        registry = PresenceRegistry()
        registry.register("alice", "conn-1")

        assert registry.unregister("alice") is True
        assert registry.lookup("alice") is None
        assert not registry.is_online("alice")

    def test_unregister_absent_is_noop(self):
        assert PresenceRegistry().unregister("ghost") is False

    def test_stale_handle_cannot_evict_successor(self):
        """Teardown of a superseded connection leaves the newer entry alone."""
        registry = PresenceRegistry()
        registry.register("alice", "conn-1")
        registry.register("alice", "conn-2")

        assert registry.unregister("alice", "conn-1") is False
        assert registry.lookup("alice") == "conn-2"

        assert registry.unregister("alice", "conn-2") is True
        assert registry.lookup("alice") is None

    def test_all_identities_is_a_snapshot(self):
        registry = PresenceRegistry()
        registry.register("alice", "conn-1")
        registry.register("bob", "conn-2")

        snapshot = registry.all_identities()
        registry.unregister("alice")

        assert snapshot == {"alice", "bob"}
        assert registry.all_identities() == {"bob"}

    def test_clear(self):
        registry = PresenceRegistry()
        registry.register("alice", "conn-1")
        registry.clear()
        assert len(registry) == 0

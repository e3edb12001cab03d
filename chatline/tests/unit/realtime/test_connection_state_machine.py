"""
Tests for the connection lifecycle state machine.
"""

import pytest
from statemachine.exceptions import TransitionNotAllowed

from chatline.realtime.connection_state_machine import ConnectionLifecycle


class TestConnectionLifecycle:
    """connecting -> authenticated -> disconnected, or connecting -> disconnected."""

    def test_initial_state(self):
        lifecycle = ConnectionLifecycle("conn-1")

        assert lifecycle.current_state.id == "connecting"
        assert not lifecycle.is_authenticated
        assert not lifecycle.is_closed

    def test_authenticate_records_user(self):
        lifecycle = ConnectionLifecycle("conn-1")
        lifecycle.authenticate(user_id="alice")

        assert lifecycle.is_authenticated
        assert lifecycle.user_id == "alice"
        assert lifecycle.authenticated_at is not None

    def test_reject_goes_straight_to_disconnected(self):
        lifecycle = ConnectionLifecycle("conn-1")
        lifecycle.reject(reason="missing_token")

        assert lifecycle.is_closed
        assert lifecycle.rejection_reason == "missing_token"
        assert lifecycle.user_id is None

    def test_disconnect_after_authenticate(self):
        lifecycle = ConnectionLifecycle("conn-1")
        lifecycle.authenticate(user_id="alice")
        lifecycle.disconnect()

        assert lifecycle.is_closed
        assert lifecycle.disconnected_at is not None

    def test_cannot_disconnect_before_authenticating(self):
        lifecycle = ConnectionLifecycle("conn-1")
        with pytest.raises(TransitionNotAllowed):
            lifecycle.disconnect()

    def test_disconnected_is_final(self):
        lifecycle = ConnectionLifecycle("conn-1")
        lifecycle.authenticate(user_id="alice")
        lifecycle.disconnect()

        with pytest.raises(TransitionNotAllowed):
            lifecycle.authenticate(user_id="alice")

    def test_get_stats(self):
        lifecycle = ConnectionLifecycle("conn-1")
        lifecycle.authenticate(user_id="alice")

        stats = lifecycle.get_stats()

        assert stats["connection_id"] == "conn-1"
        assert stats["state"] == "authenticated"
        assert stats["user_id"] == "alice"
        assert stats["disconnected_at"] is None

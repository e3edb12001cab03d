"""
Tests for realtime handshake authentication.
"""

from datetime import timedelta

import pytest

from chatline.auth.token_service import TokenService
from chatline.exceptions import ConnectionRejectedError
from chatline.realtime.connection_auth import ConnectionAuthenticator, Handshake, parse_subprotocol_token
from chatline.tests.fixtures.fake_websocket import FakeWebSocket


@pytest.fixture
def authenticator(token_service: TokenService) -> ConnectionAuthenticator:
    return ConnectionAuthenticator(token_service)


class TestParseSubprotocolToken:
    def test_bearer_form(self):
        assert parse_subprotocol_token("bearer, abc.def.ghi") == ("abc.def.ghi", "bearer")

    def test_bearer_marker_any_case_and_order(self):
        assert parse_subprotocol_token("abc.def.ghi, Bearer") == ("abc.def.ghi", "bearer")

    @pytest.mark.parametrize("header", ["abc.def.ghi", "chat", "chat, v2.chat"])
    def test_protocols_without_bearer_carry_no_token(self, header):
        assert parse_subprotocol_token(header) == (None, None)

    @pytest.mark.parametrize("header", [None, "", " , "])
    def test_empty_header(self, header):
        assert parse_subprotocol_token(header) == (None, None)


class TestHandshake:
    def test_from_cookie_header(self):
        handshake = Handshake.from_cookie_header("theme=dark; auth_token=tok123")
        assert handshake.cookies["auth_token"] == "tok123"

    def test_from_cookie_header_missing(self):
        assert Handshake.from_cookie_header(None).cookies == {}

    def test_from_websocket_prefers_query_token_over_subprotocol(self):
        websocket = FakeWebSocket(token="from-query", subprotocol_header="bearer, from-subprotocol")
        handshake = Handshake.from_websocket(websocket)

        assert handshake.auth_token == "from-query"
        assert handshake.subprotocol == "bearer"

    def test_from_websocket_subprotocol_fallback(self):
        handshake = Handshake.from_websocket(FakeWebSocket(subprotocol_header="bearer, from-subprotocol"))
        assert handshake.auth_token == "from-subprotocol"

    def test_from_websocket_ignores_plain_subprotocol(self):
        handshake = Handshake.from_websocket(FakeWebSocket(subprotocol_header="chat"))

        assert handshake.auth_token is None
        assert handshake.subprotocol is None


class TestConnectionAuthenticator:
    """Cookie first, explicit token second, one error for every refusal."""

    def test_cookie_token_accepted(self, authenticator, token_service, alice):
        handshake = Handshake(cookies={"auth_token": token_service.issue(alice)})
        assert authenticator.authenticate(handshake) == alice

    def test_explicit_token_accepted(self, authenticator, token_service, alice):
        handshake = Handshake(auth_token=token_service.issue(alice))
        assert authenticator.authenticate(handshake) == alice

    def test_cookie_wins_over_explicit_token(self, authenticator, token_service, alice, bob):
        handshake = Handshake(
            cookies={"auth_token": token_service.issue(alice)},
            auth_token=token_service.issue(bob),
        )
        assert authenticator.authenticate(handshake) == alice

    def test_empty_cookie_falls_back_to_explicit_token(self, authenticator, token_service, bob):
        handshake = Handshake(cookies={"auth_token": ""}, auth_token=token_service.issue(bob))
        assert authenticator.authenticate(handshake) == bob

    def test_custom_cookie_name(self, token_service, alice):
        authenticator = ConnectionAuthenticator(token_service, cookie_name="session")
        handshake = Handshake(cookies={"session": token_service.issue(alice)})
        assert authenticator.authenticate(handshake) == alice

    def test_missing_token_rejected(self, authenticator):
        with pytest.raises(ConnectionRejectedError) as exc_info:
            authenticator.authenticate(Handshake())
        assert exc_info.value.details["reason"] == "missing_token"

    def test_invalid_token_rejected(self, authenticator):
        with pytest.raises(ConnectionRejectedError):
            authenticator.authenticate(Handshake(auth_token="not-a-jwt"))

    def test_expired_token_rejected(self, authenticator, token_service, alice):
        token = token_service.issue(alice, expires_in=timedelta(seconds=-1))
        with pytest.raises(ConnectionRejectedError):
            authenticator.authenticate(Handshake(auth_token=token))

    def test_missing_and_forged_look_identical(self, authenticator):
        """The public message never reveals which check failed."""
        with pytest.raises(ConnectionRejectedError) as missing:
            authenticator.authenticate(Handshake())
        with pytest.raises(ConnectionRejectedError) as forged:
            authenticator.authenticate(Handshake(auth_token="forged"))

        assert missing.value.user_friendly == forged.value.user_friendly == "Authentication failed"
        assert str(missing.value) == str(forged.value)

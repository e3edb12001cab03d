"""
End-to-end realtime scenarios through the ASGI app.

Each test runs the full lifespan (in-memory database, gateway) and talks to
`/ws` with real websocket sessions from TestClient.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chatline.app.factory import create_app
from chatline.tests.fixtures.http import bearer, signup

pytestmark = pytest.mark.integration


def typing_frame(receiver_id: str, is_typing: bool = True) -> dict:
    return {"event_type": "typing", "data": {"receiverId": receiver_id, "isTyping": is_typing}}


class TestHandshake:
    def test_missing_token_rejected_with_policy_violation(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws"):
                pass

        assert exc_info.value.code == 1008
        assert exc_info.value.reason == "Authentication failed"

    def test_forged_token_rejected_identically(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws?token=forged.token.value"):
                pass

        assert exc_info.value.code == 1008
        assert exc_info.value.reason == "Authentication failed"

    def test_cookie_handshake(self, client):
        alice_id, alice_token = signup(client, "alice")

        with client.websocket_connect("/ws", headers={"cookie": f"auth_token={alice_token}"}):
            online = client.get("/api/v1/presence/online", headers=bearer(alice_token)).json()["data"]

        assert online["userIds"] == [alice_id]

    def test_bearer_subprotocol_handshake(self, client):
        _, alice_token = signup(client, "alice")

        with client.websocket_connect("/ws", subprotocols=["bearer", alice_token]) as websocket:
            assert websocket.accepted_subprotocol == "bearer"


class TestPresenceFlow:
    def test_online_typing_and_offline(self, client):
        alice_id, alice_token = signup(client, "alice")
        bob_id, bob_token = signup(client, "bob")

        with client.websocket_connect(f"/ws?token={bob_token}") as bob_ws:
            with client.websocket_connect(f"/ws?token={alice_token}") as alice_ws:
                online = bob_ws.receive_json()
                assert online["event_type"] == "userOnline"
                assert online["data"]["userId"] == alice_id

                alice_ws.send_json(typing_frame(bob_id))
                typing = bob_ws.receive_json()
                assert typing["event_type"] == "typingStatus"
                assert typing["data"] == {"userId": alice_id, "isTyping": True}

                online_ids = client.get("/api/v1/presence/online", headers=bearer(bob_token)).json()["data"]
                assert sorted(online_ids["userIds"]) == sorted([alice_id, bob_id])

            offline = bob_ws.receive_json()
            assert offline["event_type"] == "userOffline"
            assert offline["data"]["userId"] == alice_id

    def test_rest_send_is_pushed_to_receiver(self, client):
        alice_id, alice_token = signup(client, "alice")
        bob_id, bob_token = signup(client, "bob")

        with client.websocket_connect(f"/ws?token={bob_token}") as bob_ws:
            response = client.post(
                f"/api/v1/messages/send/{bob_id}", json={"text": "hello bob"}, headers=bearer(alice_token)
            )
            assert response.status_code == 201

            pushed = bob_ws.receive_json()
            assert pushed["event_type"] == "receiveMessage"
            assert pushed["data"]["_id"] == response.json()["data"]["_id"]
            assert pushed["data"]["senderId"] == alice_id
            assert pushed["data"]["text"] == "hello bob"

    def test_receipts_reach_original_sender(self, client):
        alice_id, alice_token = signup(client, "alice")
        bob_id, bob_token = signup(client, "bob")

        with client.websocket_connect(f"/ws?token={alice_token}") as alice_ws:
            with client.websocket_connect(f"/ws?token={bob_token}") as bob_ws:
                assert alice_ws.receive_json()["event_type"] == "userOnline"

                bob_ws.send_json({"event_type": "messageRead", "data": {"messageId": "m-1", "senderId": alice_id}})

                receipt = alice_ws.receive_json()
                assert receipt["event_type"] == "messageRead"
                assert receipt["data"] == {"messageId": "m-1", "userId": bob_id}

    def test_unknown_event_reports_error(self, client):
        _, alice_token = signup(client, "alice")

        with client.websocket_connect(f"/ws?token={alice_token}") as alice_ws:
            alice_ws.send_json({"event_type": "launchRockets", "data": {}})
            error = alice_ws.receive_json()

        assert error["event_type"] == "error"
        assert error["data"]["code"] == "unknown_event"


class TestSupersede:
    def test_second_connection_closes_first(self, client):
        alice_id, alice_token = signup(client, "alice")
        _, bob_token = signup(client, "bob")

        with client.websocket_connect(f"/ws?token={alice_token}") as first:
            with client.websocket_connect(f"/ws?token={alice_token}"):
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    first.receive_json()
                assert exc_info.value.code == 4000

                online = client.get("/api/v1/presence/online", headers=bearer(bob_token)).json()["data"]
                assert online["userIds"] == [alice_id]


class TestRateLimit:
    def test_eleventh_event_in_window_is_refused(self, monkeypatch):
        monkeypatch.setenv("REALTIME_NOTIFY_ON_RATE_LIMIT", "true")

        with TestClient(create_app()) as client:
            _, alice_token = signup(client, "alice")
            bob_id, bob_token = signup(client, "bob")

            with client.websocket_connect(f"/ws?token={bob_token}") as bob_ws:
                with client.websocket_connect(f"/ws?token={alice_token}") as alice_ws:
                    assert bob_ws.receive_json()["event_type"] == "userOnline"

                    for _ in range(11):
                        alice_ws.send_json(typing_frame(bob_id))

                    received = [bob_ws.receive_json() for _ in range(10)]
                    assert all(event["event_type"] == "typingStatus" for event in received)

                    notice = alice_ws.receive_json()
                    assert notice["event_type"] == "error"
                    assert notice["data"]["code"] == "rate_limit_exceeded"

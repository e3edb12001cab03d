"""
Tests for the authentication endpoints.
"""

from fastapi.testclient import TestClient

from chatline.app.factory import create_app
from chatline.services.email_service import EmailService
from chatline.tests.fixtures.http import DEFAULT_PASSWORD, bearer, login, register, signup


class TestRegister:
    def test_register_success(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "Alice@Example.com", "username": "alice", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["email"] == "alice@example.com"
        assert body["data"]["username"] == "alice"
        assert body["data"]["createdAt"].endswith("Z")
        assert "password" not in response.text
        assert "hashedPassword" not in body["data"]

    def test_short_password_is_400(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "alice@example.com", "username": "alice", "password": "1234567"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Password must be at least 8 characters"

    def test_invalid_email_is_400(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "not-an-email", "username": "alice", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "validation_error"

    def test_short_username_is_400(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "alice@example.com", "username": "al", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 400

    def test_duplicate_email_is_409(self, client):
        register(client, "alice")
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "alice@example.com", "username": "alice2", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 409
        assert response.json()["error"]["type"] == "resource_conflict"


class TestLogin:
    def test_login_sets_http_only_cookie(self, client):
        register(client, "alice")

        response = client.post(
            "/api/v1/auth/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 200
        assert response.json()["data"]["username"] == "alice"
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("auth_token=")
        assert "HttpOnly" in set_cookie
        assert "samesite=lax" in set_cookie.lower()

    def test_wrong_password_and_unknown_email_look_identical(self, client):
        register(client, "alice")

        wrong_password = client.post(
            "/api/v1/auth/login", json={"email": "alice@example.com", "password": "wrong-password"}
        )
        unknown_email = client.post(
            "/api/v1/auth/login", json={"email": "nobody@example.com", "password": DEFAULT_PASSWORD}
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json()["message"] == unknown_email.json()["message"] == "Invalid email or password"
        assert "set-cookie" not in wrong_password.headers

    def test_logout_clears_cookie(self, client):
        register(client, "alice")
        client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD})

        response = client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        assert 'auth_token=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]
        assert client.get("/api/v1/auth/me").status_code == 401


class TestCurrentUser:
    def test_me_with_cookie(self, client):
        register(client, "alice")
        client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD})

        response = client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["data"]["username"] == "alice"

    def test_me_with_bearer_header(self, client):
        _, token = signup(client, "alice")

        response = client.get("/api/v1/auth/me", headers=bearer(token))

        assert response.status_code == 200

    def test_unauthenticated_requests_get_generic_401(self, client):
        missing = client.get("/api/v1/auth/me")
        forged = client.get("/api/v1/auth/me", headers=bearer("forged.token.value"))

        assert missing.status_code == forged.status_code == 401
        assert missing.json()["message"] == forged.json()["message"] == "Unauthorized"

    def test_update_profile(self, client):
        _, token = signup(client, "alice")

        response = client.put(
            "/api/v1/auth/update-user",
            json={"username": "alice_renamed", "profilePic": "https://img.example/a.png"},
            headers=bearer(token),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == "alice_renamed"
        assert data["profilePic"] == "https://img.example/a.png"

    def test_update_to_taken_username_is_409(self, client):
        register(client, "bob")
        _, token = signup(client, "alice")

        response = client.put("/api/v1/auth/update-user", json={"username": "bob"}, headers=bearer(token))

        assert response.status_code == 409

    def test_token_still_valid_after_login_elsewhere(self, client):
        """Tokens are stateless; a second login does not revoke the first."""
        register(client, "alice")
        first = login(client, "alice")
        login(client, "alice")

        assert client.get("/api/v1/auth/me", headers=bearer(first)).status_code == 200


class TestWelcomeEmail:
    """Registration queues a best-effort welcome email when email is configured."""

    def test_welcome_email_sent_after_registration(self, monkeypatch, mocker):
        monkeypatch.setenv("EMAIL_RESEND_API_KEY", "re_test_key")
        monkeypatch.setenv("EMAIL_FROM_ADDRESS", "hello@chatline.test")
        send_welcome = mocker.patch.object(EmailService, "send_welcome", new_callable=mocker.AsyncMock)

        with TestClient(create_app()) as client:
            register(client, "alice")

        send_welcome.assert_awaited_once_with("alice@example.com", "alice")

    def test_email_failure_does_not_fail_registration(self, monkeypatch, mocker):
        monkeypatch.setenv("EMAIL_RESEND_API_KEY", "re_test_key")
        monkeypatch.setenv("EMAIL_FROM_ADDRESS", "hello@chatline.test")
        mocker.patch.object(EmailService, "send", new_callable=mocker.AsyncMock, return_value=False)

        with TestClient(create_app()) as client:
            user = register(client, "alice")

        assert user["username"] == "alice"

    def test_no_email_when_unconfigured(self, client, mocker):
        send_welcome = mocker.patch.object(EmailService, "send_welcome", new_callable=mocker.AsyncMock)

        register(client, "alice")

        send_welcome.assert_not_awaited()

"""Helpers for driving the HTTP API from tests."""

from typing import Any

from fastapi.testclient import TestClient

DEFAULT_PASSWORD = "password123"


def register(client: TestClient, username: str, password: str = DEFAULT_PASSWORD) -> dict[str, Any]:
    response = client.post(
        "/api/v1/auth/register",
        json={"email": f"{username}@example.com", "username": username, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def login(client: TestClient, username: str, password: str = DEFAULT_PASSWORD) -> str:
    """Log in and return the session token, leaving the client's cookie jar empty."""
    response = client.post("/api/v1/auth/login", json={"email": f"{username}@example.com", "password": password})
    assert response.status_code == 200, response.text
    token = response.cookies["auth_token"]
    client.cookies.clear()
    return token


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def signup(client: TestClient, username: str) -> tuple[str, str]:
    """Register and log in; returns (user_id, token)."""
    user = register(client, username)
    return user["_id"], login(client, username)

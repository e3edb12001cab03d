"""In-memory stand-ins for a websocket and a monotonic clock."""

import json
from types import SimpleNamespace
from typing import Any

from starlette.datastructures import URL, Headers, QueryParams


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWebSocket:
    """
    Records what the gateway does to a websocket.

    `sent` holds decoded outbound events; `closed_with` is the (code, reason)
    of the close call, if any.
    """

    def __init__(
        self,
        *,
        cookies: dict[str, str] | None = None,
        token: str | None = None,
        subprotocol_header: str | None = None,
        fail_sends: bool = False,
    ) -> None:
        raw_headers: dict[str, str] = {"user-agent": "pytest"}
        if subprotocol_header:
            raw_headers["sec-websocket-protocol"] = subprotocol_header
        self.headers = Headers(raw_headers)
        self.query_params = QueryParams({"token": token} if token else {})
        self.cookies = cookies or {}
        self.client = SimpleNamespace(host="127.0.0.1", port=50000)
        self.url = URL("ws://testserver/ws")
        self.state = SimpleNamespace()

        self.accepted = False
        self.accepted_subprotocol: str | None = None
        self.closed_with: tuple[int, str | None] | None = None
        self.sent: list[dict[str, Any]] = []
        self.fail_sends = fail_sends

    async def accept(self, subprotocol: str | None = None) -> None:
        self.accepted = True
        self.accepted_subprotocol = subprotocol

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = (code, reason)

    async def send_text(self, data: str) -> None:
        if self.fail_sends:
            raise RuntimeError("Cannot call send once a close message has been sent.")
        self.sent.append(json.loads(data))

    def events(self, event_type: str) -> list[dict[str, Any]]:
        return [event for event in self.sent if event["event_type"] == event_type]

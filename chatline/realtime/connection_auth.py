"""
Handshake authentication for realtime connections.

The session cookie is preferred; an explicit token (query parameter or the
`bearer, <token>` websocket subprotocol form) is the fallback for clients
that cannot send cookies. Every refusal raises the same
ConnectionRejectedError so a client cannot tell a missing credential from a
forged one.
"""

from dataclasses import dataclass, field

from fastapi import WebSocket
from starlette.requests import cookie_parser

from ..auth.token_service import Identity, TokenService
from ..exceptions import ConnectionRejectedError, ErrorContext, InvalidTokenError
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_COOKIE_NAME = "auth_token"
BEARER_SUBPROTOCOL = "bearer"


def parse_subprotocol_token(header_value: str | None) -> tuple[str | None, str | None]:
    """
    Extract a token from a Sec-WebSocket-Protocol header.

    Only the "bearer, <token>" form carries a token; "bearer" is the
    subprotocol echoed back on accept. Any other requested protocol is
    ignored.

    Returns:
        (token, subprotocol_to_accept)
    """
    if not header_value:
        return None, None
    parts = [p.strip() for p in header_value.split(",") if p.strip()]
    if not parts:
        return None, None
    lowered = [p.lower() for p in parts]
    if BEARER_SUBPROTOCOL in lowered:
        candidates = [p for p in parts if p.lower() != BEARER_SUBPROTOCOL]
        return (candidates[0] if candidates else None), BEARER_SUBPROTOCOL
    return None, None


@dataclass
class Handshake:
    """The credential-bearing parts of an incoming connection request."""

    cookies: dict[str, str] = field(default_factory=dict)
    auth_token: str | None = None
    subprotocol: str | None = None

    @classmethod
    def from_cookie_header(cls, cookie_header: str | None, auth_token: str | None = None) -> "Handshake":
        return cls(cookies=cookie_parser(cookie_header) if cookie_header else {}, auth_token=auth_token)

    @classmethod
    def from_websocket(cls, websocket: WebSocket) -> "Handshake":
        token, subprotocol = parse_subprotocol_token(websocket.headers.get("sec-websocket-protocol"))
        explicit = websocket.query_params.get("token") or token
        return cls(cookies=dict(websocket.cookies), auth_token=explicit, subprotocol=subprotocol)


class ConnectionAuthenticator:
    """Turns a handshake into an Identity, or refuses it."""

    def __init__(self, token_service: TokenService, cookie_name: str = DEFAULT_COOKIE_NAME) -> None:
        self.token_service = token_service
        self.cookie_name = cookie_name

    def extract_token(self, handshake: Handshake) -> str | None:
        """Cookie first, explicit token second; empty strings count as absent."""
        token = handshake.cookies.get(self.cookie_name)
        if token:
            return token
        return handshake.auth_token or None

    def authenticate(self, handshake: Handshake, context: ErrorContext | None = None) -> Identity:
        """
        Verify the handshake credentials.

        Returns:
            The Identity to attach to the connection

        Raises:
            ConnectionRejectedError: No token, or the token failed verification
        """
        token = self.extract_token(handshake)
        if not token:
            raise ConnectionRejectedError(reason="missing_token", context=context)

        try:
            claims = self.token_service.verify(token)
        except InvalidTokenError as e:
            raise ConnectionRejectedError(reason=e.details.get("reason", "invalid_token"), context=context) from None

        logger.debug("Handshake authenticated", user_id=claims.identity.id)
        return claims.identity

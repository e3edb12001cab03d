"""
Session token issuing and verification.

Tokens are HS256-signed JWTs carrying `sub` (identity id), `email`, `iat`
and `exp`. Verification collapses every failure mode into a single
InvalidTokenError so callers cannot leak why a token was refused.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from ..exceptions import ConfigurationError, InvalidTokenError
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"
DEFAULT_LIFETIME = timedelta(days=7)


@dataclass(frozen=True)
class Identity:
    """The authenticated principal. Opaque to everything but the auth layer."""

    id: str
    email: str


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""

    identity: Identity
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and verifies signed session tokens."""

    def __init__(
        self,
        secret: str | None,
        algorithm: str = ALGORITHM,
        default_lifetime: timedelta = DEFAULT_LIFETIME,
    ) -> None:
        if not secret:
            raise ConfigurationError(
                "JWT signing secret is not configured",
                config_key="AUTH_JWT_SECRET",
                user_friendly="Server authentication is misconfigured",
            )
        self._secret = secret
        self.algorithm = algorithm
        self.default_lifetime = default_lifetime

    def issue(self, identity: Identity, expires_in: timedelta | None = None) -> str:
        """
        Sign a token for the identity.

        Args:
            identity: The principal the token represents
            expires_in: Lifetime; the service default when omitted

        Returns:
            Encoded JWT string
        """
        issued_at = datetime.now(UTC)
        expires_at = issued_at + (expires_in if expires_in is not None else self.default_lifetime)
        claims = {
            "sub": identity.id,
            "email": identity.email,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        logger.debug("Issuing session token", user_id=identity.id, expires_at=expires_at.isoformat())
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str | None) -> TokenClaims:
        """
        Verify a token and return its claims.

        Raises:
            InvalidTokenError: On any failure (missing, malformed, bad signature,
                expired, missing or non-string claims)
        """
        if not token or not isinstance(token, str):
            raise InvalidTokenError(reason="missing")

        try:
            payload: dict[str, Any] = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidTokenError(reason=type(e).__name__) from None

        subject = payload.get("sub")
        email = payload.get("email")
        if not isinstance(subject, str) or not subject or not isinstance(email, str) or not email:
            raise InvalidTokenError(reason="missing_claims")

        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not isinstance(issued_at, (int, float)) or not isinstance(expires_at, (int, float)):
            raise InvalidTokenError(reason="missing_timestamps")

        return TokenClaims(
            identity=Identity(id=subject, email=email),
            issued_at=datetime.fromtimestamp(issued_at, UTC),
            expires_at=datetime.fromtimestamp(expires_at, UTC),
        )

"""
Authentication dependencies for Chatline.

This module provides dependency injection functions for authentication and
for the request-scoped services used by the HTTP endpoints. Shared objects
(token service, gateway, email client) live on app.state and are created by
the application lifespan.
"""

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_config
from ..database import get_async_session
from ..error_types import ErrorMessages
from ..exceptions import InvalidTokenError, LoggedHTTPException
from ..models.user import User
from ..realtime.gateway import RealtimeGateway
from ..services.account_service import AccountService
from ..services.email_service import EmailService
from ..services.message_service import MessageService
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import create_context_from_request
from .token_service import TokenService

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_gateway(request: Request) -> RealtimeGateway:
    return request.app.state.gateway


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


async def get_account_service(
    session: AsyncSession = Depends(get_async_session),
    token_service: TokenService = Depends(get_token_service),
) -> AccountService:
    return AccountService(session, token_service, min_password_length=get_config().auth.min_password_length)


async def get_message_service(session: AsyncSession = Depends(get_async_session)) -> MessageService:
    return MessageService(session, max_text_length=get_config().realtime.max_message_length)


def extract_request_token(request: Request, cookie_name: str) -> str | None:
    """Session token from the auth cookie, falling back to an Authorization: Bearer header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    header = request.headers.get("authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX) :].strip() or None
    return None


def _unauthorized(request: Request, reason: str) -> LoggedHTTPException:
    context = create_context_from_request(request)
    context.metadata["reason"] = reason
    return LoggedHTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=ErrorMessages.UNAUTHORIZED,
        context=context,
    )


async def get_current_user(
    request: Request,
    token_service: TokenService = Depends(get_token_service),
    accounts: AccountService = Depends(get_account_service),
) -> User:
    """
    Resolve the caller from the session token.

    Every failure (no token, bad signature, expired, unknown or inactive
    user) produces the same 401 so callers cannot tell the causes apart.
    """
    token = extract_request_token(request, get_config().auth.cookie_name)
    if token is None:
        raise _unauthorized(request, "missing_token")

    try:
        claims = token_service.verify(token)
    except InvalidTokenError as e:
        raise _unauthorized(request, e.details.get("reason", "invalid")) from None

    user = await accounts.get_user(claims.identity.id)
    if user is None:
        raise _unauthorized(request, "unknown_user")
    if not user.is_active:
        raise _unauthorized(request, "inactive_user")

    request.state.user_id = str(user.id)
    return user


__all__ = [
    "get_current_user",
    "get_token_service",
    "get_gateway",
    "get_email_service",
    "get_account_service",
    "get_message_service",
    "extract_request_token",
]

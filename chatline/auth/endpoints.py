"""
Authentication endpoints for Chatline.

This module provides endpoints for registration, login, logout, profile
updates and the current-user lookup. The session token travels in an
HTTP-only cookie; the same token is accepted by the realtime handshake.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status

from ..config import get_config
from ..error_types import ErrorMessages
from ..exceptions import LoggedHTTPException
from ..models.user import User
from ..schemas.auth import LoginRequest, RegisterRequest, UpdateProfileRequest, UserPublic
from ..schemas.common import ApiResponse
from ..services.account_service import AccountService
from ..services.email_service import EmailService
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import create_context_from_request
from .dependencies import get_account_service, get_current_user, get_email_service

logger = get_logger(__name__)

auth_router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    auth = get_config().auth
    response.set_cookie(
        key=auth.cookie_name,
        value=token,
        max_age=auth.token_lifetime_seconds,
        httponly=True,
        secure=auth.cookie_secure,
        samesite=auth.cookie_samesite,
        path="/",
    )


def _clear_session_cookie(response: Response) -> None:
    auth = get_config().auth
    response.delete_cookie(
        key=auth.cookie_name,
        httponly=True,
        secure=auth.cookie_secure,
        samesite=auth.cookie_samesite,
        path="/",
    )


@auth_router.post("/register", response_model=ApiResponse[UserPublic], status_code=status.HTTP_201_CREATED)
async def register_user(
    request: RegisterRequest,
    background_tasks: BackgroundTasks,
    accounts: AccountService = Depends(get_account_service),
    email_service: EmailService = Depends(get_email_service),
) -> ApiResponse[UserPublic]:
    """
    Create an account.

    A welcome email is queued after the response is sent; its failure never
    affects registration.
    """
    user = await accounts.register(request)

    if email_service.enabled:
        background_tasks.add_task(email_service.send_welcome, user.email, user.username)

    return ApiResponse[UserPublic](
        message="User signed up successfully",
        data=UserPublic.model_validate(user),
    )


@auth_router.post("/login", response_model=ApiResponse[UserPublic])
async def login_user(
    request: LoginRequest,
    response: Response,
    http_request: Request,
    accounts: AccountService = Depends(get_account_service),
) -> ApiResponse[UserPublic]:
    """Check credentials and start a cookie session."""
    user = await accounts.authenticate(request.email, request.password)
    if user is None:
        context = create_context_from_request(http_request)
        context.metadata["operation"] = "login_user"
        raise LoggedHTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ErrorMessages.INVALID_CREDENTIALS,
            context=context,
        )

    _set_session_cookie(response, accounts.issue_token(user))
    logger.info("User logged in", user_id=str(user.id))
    return ApiResponse[UserPublic](message="Logged in successfully", data=UserPublic.model_validate(user))


@auth_router.post("/logout", response_model=ApiResponse[None])
async def logout_user(response: Response) -> ApiResponse[None]:
    # Tokens are stateless; logging out only drops the cookie
    _clear_session_cookie(response)
    return ApiResponse[None](message="Logged out successfully")


@auth_router.put("/update-user", response_model=ApiResponse[UserPublic])
async def update_user(
    request: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> ApiResponse[UserPublic]:
    user = await accounts.update_profile(current_user, request)
    return ApiResponse[UserPublic](message="Profile updated successfully", data=UserPublic.model_validate(user))


@auth_router.get("/me", response_model=ApiResponse[UserPublic])
async def get_current_user_info(current_user: User = Depends(get_current_user)) -> ApiResponse[UserPublic]:
    """Return the authenticated user."""
    return ApiResponse[UserPublic](data=UserPublic.model_validate(current_user))

"""
Authentication API Routes

Handles:
- Login (token issued as an HttpOnly cookie and in the body)
- Logout
- Password reset
- Current user retrieval
"""

from fastapi import APIRouter, Depends, Response, status
from loguru import logger

from gameorganizer.api.dependencies import (
    ACCESS_TOKEN_COOKIE,
    AUTH_FLAG_COOKIE,
    Settings,
    get_account_service,
    get_auth_service,
    get_current_user,
    get_settings,
)
from gameorganizer.api.schemas import (
    AccountResponse,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetRequest,
    PasswordResetRequestResponse,
    PerformPasswordResetRequest,
)
from gameorganizer.services.context import AuthenticatedUser


router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookies(response: Response, token: str, max_age, secure: bool) -> None:
    # max_age None leaves both as session cookies
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=token,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=secure,
    )
    response.set_cookie(
        key=AUTH_FLAG_COOKIE,
        value="true",
        max_age=max_age,
        path="/",
        httponly=False,
        samesite="lax",
        secure=secure,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
def login(
    credentials: LoginRequest,
    response: Response,
    auth_service=Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Authenticate with email and password."""
    result = auth_service.login(credentials.email, credentials.password, credentials.remember_me)
    _set_auth_cookies(response, result.access_token, result.max_age, settings.cookie_secure)

    account = result.account
    return LoginResponse(
        id=account.id,
        username=account.name,
        email=account.email,
        is_game_owner=account.is_game_owner,
        access_token=result.access_token,
    )


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, settings: Settings = Depends(get_settings)):
    """Clear the auth cookies. Tokens are stateless, so nothing is revoked server-side."""
    for name in (ACCESS_TOKEN_COOKIE, AUTH_FLAG_COOKIE):
        response.delete_cookie(
            key=name,
            path="/",
            httponly=name == ACCESS_TOKEN_COOKIE,
            samesite="lax",
            secure=settings.cookie_secure,
        )
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/request-password-reset",
    response_model=PasswordResetRequestResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse, "description": "Email not found"}},
)
def request_password_reset(
    payload: PasswordResetRequest,
    auth_service=Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Issue a reset token. Delivery is outside this service; debug builds echo the token."""
    token = auth_service.request_password_reset(payload.email)
    if settings.debug:
        logger.debug(f"Echoing password reset token for {payload.email} (debug mode)")
        return PasswordResetRequestResponse(message="Password reset token generated", token=token)
    return PasswordResetRequestResponse(message="Password reset token generated")


@router.post(
    "/perform-password-reset",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid token or password"}},
)
def perform_password_reset(
    payload: PerformPasswordResetRequest,
    auth_service=Depends(get_auth_service),
):
    auth_service.perform_password_reset(payload.token, payload.new_password)
    return MessageResponse(message="Password has been reset successfully")


@router.get(
    "/me",
    response_model=AccountResponse,
    status_code=status.HTTP_200_OK,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
def read_current_user(
    current_user: AuthenticatedUser = Depends(get_current_user),
    account_service=Depends(get_account_service),
):
    """Get the caller's account."""
    return AccountResponse.from_account(account_service.get_account(current_user.id))

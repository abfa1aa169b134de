"""Account endpoints: registration, login, session cookies and profile."""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Cookie, Depends, status

from timberledger.api.cookies import (
    REFRESH_COOKIE,
    clear_token_cookies,
    set_access_cookie,
    set_token_cookies,
)
from timberledger.api.dependencies import get_auth_service, get_current_user_id
from timberledger.api.responses import respond
from timberledger.exceptions import InvalidCredentialError, NotFoundError
from timberledger.models.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from timberledger.repositories.user_repository import UserRepository
from timberledger.services.auth_service import AuthService, verify_password

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

INVALID_LOGIN_MESSAGE = "Invalid email/username or password"


async def _details_or_404(repository: UserRepository, user_id: UUID):
    details = await repository.get_user_details(user_id)
    if details is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return details


@router.post("/register")
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Create an account and start a session.

    Returns:
        201 with the user details; session cookies are set

    Raises:
        ValidationError: If the email or username is already registered
    """
    repository = UserRepository()
    user = await repository.create_user(request)
    tokens = auth_service.issue(user.id)
    details = await _details_or_404(repository, user.id)

    logger.info("user_registered", user_id=str(user.id))
    response = respond(
        "Account registered successfully",
        data=details,
        status_code=status.HTTP_201_CREATED,
    )
    set_token_cookies(response, tokens, auth_service)
    return response


@router.post("/login")
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Log in with email or username plus password.

    Raises:
        InvalidCredentialError: If the credentials do not match an active account
    """
    repository = UserRepository()
    account = await repository.get_credentials(email=request.email, username=request.username)

    if account is None or not verify_password(request.password, account.password_hash):
        raise InvalidCredentialError(INVALID_LOGIN_MESSAGE)
    if not account.is_active:
        raise InvalidCredentialError("User account is disabled")

    tokens = auth_service.issue(account.id)
    details = await _details_or_404(repository, account.id)

    logger.info("user_logged_in", user_id=str(account.id))
    response = respond("Logged in successfully", data=details)
    set_token_cookies(response, tokens, auth_service)
    return response


@router.post("/refresh-token")
async def refresh_token(
    refresh_cookie: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Mint a new access token from the refresh token cookie.

    The refresh token is not rotated; only the access cookie is replaced.

    Raises:
        InvalidCredentialError: If the refresh cookie is missing or invalid
    """
    if not refresh_cookie:
        raise InvalidCredentialError("Refresh token missing. Please log in again.")

    access_token = auth_service.refresh(refresh_cookie)
    response = respond("Access token refreshed")
    set_access_cookie(response, access_token, auth_service)
    return response


@router.post("/logout")
async def logout():
    """Clear the session cookies."""
    response = respond("Logged out successfully")
    clear_token_cookies(response)
    return response


@router.get("/profile")
async def get_profile(user_id: UUID = Depends(get_current_user_id)):
    """Current user with role and address."""
    details = await _details_or_404(UserRepository(), user_id)
    return respond("Profile retrieved successfully", data=details)


@router.put("/profile")
async def update_profile(
    request: UpdateProfileRequest,
    user_id: UUID = Depends(get_current_user_id),
):
    """Update the current user's profile.

    Raises:
        ValidationError: If the new username is already taken
    """
    repository = UserRepository()
    await repository.update_profile(user_id, request)
    details = await _details_or_404(repository, user_id)
    return respond("Profile updated successfully", data=details)


@router.put("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    user_id: UUID = Depends(get_current_user_id),
):
    """Change the current user's password.

    Raises:
        InvalidCredentialError: If the current password is wrong
    """
    await UserRepository().update_password(
        user_id,
        request.current_password,
        request.new_password,
    )
    return respond("Password changed successfully")

"""FastAPI dependencies for cookie-based authentication."""

from typing import Optional
from uuid import UUID

from fastapi import Cookie, Depends, Request

from timberledger.api.cookies import ACCESS_COOKIE
from timberledger.exceptions import InvalidCredentialError
from timberledger.services.auth_service import AuthService


def get_auth_service() -> AuthService:
    """Token issuer built from current settings."""
    return AuthService()


async def get_current_user_id(
    request: Request,
    access_token: Optional[str] = Cookie(default=None, alias=ACCESS_COOKIE),
    auth_service: AuthService = Depends(get_auth_service),
) -> UUID:
    """Resolve the authenticated subject from the access token cookie.

    The subject id is also stored on ``request.state.subject_id`` for the
    access log.

    Returns:
        Id of the authenticated user

    Raises:
        InvalidCredentialError: If the cookie is missing or the token is invalid
    """
    if not access_token:
        raise InvalidCredentialError("Authentication required. Please log in.")

    subject = auth_service.verify_access(access_token)
    try:
        user_id = UUID(subject)
    except ValueError:
        raise InvalidCredentialError("Invalid token subject")

    request.state.subject_id = str(user_id)
    return user_id

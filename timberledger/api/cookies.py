"""Cookie transport for session tokens."""

from fastapi import Response

from timberledger.config import get_settings
from timberledger.models.auth import TokenPair
from timberledger.services.auth_service import AuthService

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _set_cookie(response: Response, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        httponly=True,
        secure=get_settings().is_production,
        samesite="strict",
    )


def set_access_cookie(response: Response, access_token: str, auth_service: AuthService) -> None:
    """Attach the access token cookie, expiring with the token."""
    _set_cookie(response, ACCESS_COOKIE, access_token, auth_service.access_ttl)


def set_token_cookies(response: Response, tokens: TokenPair, auth_service: AuthService) -> None:
    """Attach both session cookies. ``max_age`` is each token's TTL in seconds."""
    set_access_cookie(response, tokens.access_token, auth_service)
    _set_cookie(response, REFRESH_COOKIE, tokens.refresh_token, auth_service.refresh_ttl)


def clear_token_cookies(response: Response) -> None:
    """Expire both session cookies. Tokens already issued stay valid until expiry."""
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=name,
            httponly=True,
            secure=get_settings().is_production,
            samesite="strict",
        )

"""Session tokens and password hashing.

Access and refresh tokens are JWTs signed with distinct secrets and TTLs.
Nothing is persisted server-side: a token stays valid until its embedded
expiry, and a refresh token is not rotated when used. Logging out only
clears the cookies that carry them.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
import structlog

from timberledger.config import Settings, get_settings
from timberledger.exceptions import ConfigurationError, InvalidCredentialError
from timberledger.models.auth import TokenPair

logger = structlog.get_logger(__name__)

# Constants
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
REQUIRED_SETTINGS = (
    "jwt_secret",
    "jwt_expires_in",
    "refresh_token_secret",
    "refresh_token_expires_in",
)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain-text password to hash

    Returns:
        Bcrypt hash string
    """
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt hash.

    Args:
        password: Plain-text password to check
        password_hash: Bcrypt hash to verify against

    Returns:
        True if the password matches, False otherwise
    """
    return bcrypt.checkpw(
        password.encode("utf-8"),
        password_hash.encode("utf-8"),
    )


class AuthService:
    """Mints and verifies access and refresh tokens.

    Raises:
        ConfigurationError: On construction, if a secret or TTL is missing
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        missing = [
            name.upper()
            for name in REQUIRED_SETTINGS
            if getattr(self.settings, name, None) in (None, "")
        ]
        if missing:
            raise ConfigurationError(
                f"Token configuration is incomplete, missing: {', '.join(missing)}"
            )

        for name in ("jwt_expires_in", "refresh_token_expires_in"):
            if int(getattr(self.settings, name)) <= 0:
                raise ConfigurationError(f"{name.upper()} must be a positive number of seconds")

    @property
    def access_ttl(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.settings.jwt_expires_in)

    @property
    def refresh_ttl(self) -> int:
        """Refresh token lifetime in seconds."""
        return int(self.settings.refresh_token_expires_in)

    def issue(self, subject_id: Any) -> TokenPair:
        """Mint a fresh access/refresh pair for a subject.

        Args:
            subject_id: User id placed in the 'sub' claim

        Returns:
            TokenPair with both encoded JWTs
        """
        pair = TokenPair(
            access_token=self.create_access_token(subject_id),
            refresh_token=self._encode(
                subject_id,
                self.settings.refresh_token_secret,
                self.refresh_ttl,
                REFRESH_TOKEN_TYPE,
            ),
        )
        logger.info(
            "session_tokens_issued",
            subject_id=str(subject_id),
            access_ttl=self.access_ttl,
            refresh_ttl=self.refresh_ttl,
        )
        return pair

    def create_access_token(self, subject_id: Any) -> str:
        """Create a signed access token for a subject."""
        return self._encode(
            subject_id,
            self.settings.jwt_secret,
            self.access_ttl,
            ACCESS_TOKEN_TYPE,
        )

    def verify_access(self, token: str) -> str:
        """Decode and validate an access token.

        Returns:
            The subject id

        Raises:
            InvalidCredentialError: If the token is invalid, expired, or malformed
        """
        return self._decode(token, self.settings.jwt_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh(self, token: str) -> str:
        """Decode and validate a refresh token.

        Returns:
            The subject id

        Raises:
            InvalidCredentialError: If the token is invalid, expired, or malformed
        """
        return self._decode(token, self.settings.refresh_token_secret, REFRESH_TOKEN_TYPE)

    def refresh(self, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token.

        The refresh token itself is neither rotated nor invalidated and stays
        usable until it expires.

        Returns:
            A new access token for the same subject

        Raises:
            InvalidCredentialError: If the refresh token does not verify
        """
        subject_id = self.verify_refresh(refresh_token)
        access_token = self.create_access_token(subject_id)
        logger.info("access_token_refreshed", subject_id=subject_id)
        return access_token

    def _encode(self, subject_id: Any, secret: str, ttl: int, token_type: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "type": token_type,
            "iat": now,
            "exp": now + timedelta(seconds=ttl),
        }
        return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)

    def _decode(self, token: str, secret: str, expected_type: str) -> str:
        try:
            payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise InvalidCredentialError(f"{expected_type.capitalize()} token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidCredentialError(f"Invalid {expected_type} token: {e}")

        if payload.get("type") != expected_type:
            raise InvalidCredentialError(f"Wrong token type, expected {expected_type}")

        subject_id = payload.get("sub")
        if not subject_id:
            raise InvalidCredentialError("Token payload has no subject")

        return str(subject_id)

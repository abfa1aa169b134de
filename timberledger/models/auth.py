"""Account request models with validation."""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,30}$")
PHONE_PATTERN = re.compile(r"^[0-9+\-\s]{10,15}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PASSWORD_RULE = (
    "Password must be at least 8 characters and include upper and lower case "
    "letters, a digit and a special character (@$!%*?&)"
)


def check_password_strength(value: str) -> str:
    """Raise ValueError unless the password satisfies PASSWORD_PATTERN."""
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(PASSWORD_RULE)
    return value


def check_username(value: Optional[str]) -> Optional[str]:
    """Raise ValueError for usernames outside 3-30 word characters."""
    if value is not None and not USERNAME_PATTERN.match(value):
        raise ValueError(
            "Username may only contain letters, digits and underscores, "
            "3-30 characters long"
        )
    return value


def check_phone(value: Optional[str]) -> Optional[str]:
    """Raise ValueError for malformed phone numbers."""
    if value is not None and not PHONE_PATTERN.match(value):
        raise ValueError("Phone number is invalid")
    return value


class RegisterRequest(BaseModel):
    """New account registration.

    Attributes:
        email: Unique email address
        password: Must satisfy PASSWORD_PATTERN
        username: Optional unique handle (3-30 word characters)
        full_name: Display name
        phone: Optional phone number
    """

    email: str = Field(..., max_length=255)
    password: str
    username: Optional[str] = None
    full_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        """Ensure the email has a plausible shape."""
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Email is invalid")
        return v

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        """Enforce the password strength rule."""
        return check_password_strength(v)

    @field_validator("username")
    @classmethod
    def username_valid_chars(cls, v: Optional[str]) -> Optional[str]:
        """Ensure username contains only letters, digits or underscores."""
        return check_username(v)

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: Optional[str]) -> Optional[str]:
        """Ensure phone holds 10-15 digits, spaces, plus signs or hyphens."""
        return check_phone(v)


class LoginRequest(BaseModel):
    """Login with either email or username plus password."""

    email: Optional[str] = None
    username: Optional[str] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def identifier_present(self) -> "LoginRequest":
        """Require an email or a username."""
        if not self.email and not self.username:
            raise ValueError("Provide an email or a username")
        return self


class UpdateProfileRequest(BaseModel):
    """Profile update. All fields optional; only provided fields change."""

    full_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = None
    username: Optional[str] = None

    @field_validator("username")
    @classmethod
    def username_valid_chars(cls, v: Optional[str]) -> Optional[str]:
        """Ensure username contains only letters, digits or underscores."""
        return check_username(v)

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: Optional[str]) -> Optional[str]:
        """Ensure phone holds 10-15 digits, spaces, plus signs or hyphens."""
        return check_phone(v)


class ChangePasswordRequest(BaseModel):
    """Password change for the authenticated user."""

    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def new_password_strong(cls, v: str) -> str:
        """Enforce the password strength rule."""
        return check_password_strength(v)


class TokenPair(BaseModel):
    """Access and refresh tokens minted together at login or registration."""

    access_token: str
    refresh_token: str

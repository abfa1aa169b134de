"""User, role, permission and address models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Role(BaseModel):
    """A named role a user can hold."""

    id: UUID
    name: str
    created_at: datetime


class Permission(BaseModel):
    """A named capability granted to roles."""

    id: UUID
    name: str
    created_at: datetime


class RolePermission(BaseModel):
    """Association row between a role and a permission."""

    role_id: UUID
    permission_id: UUID


class RoleDetails(Role):
    """Role with the names of its granted permissions."""

    permissions: list[str] = Field(default_factory=list)


class Address(BaseModel):
    """Postal address attached to a user."""

    id: UUID
    province: Optional[str] = None
    district: Optional[str] = None
    commune: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime


class User(BaseModel):
    """A registered account. Never carries the password hash."""

    id: UUID
    username: Optional[str] = None
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role_id: Optional[UUID] = None
    address_id: Optional[UUID] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class UserAccount(User):
    """Stored user row including the bcrypt hash. Internal to repositories."""

    password_hash: str

    def to_user(self) -> User:
        """Drop the password hash."""
        return User(**self.model_dump(exclude={"password_hash"}))


class UserSummary(BaseModel):
    """Compact user representation embedded in related records."""

    id: UUID
    username: Optional[str] = None
    full_name: Optional[str] = None
    email: str


class UserDetails(User):
    """User with role (and its permissions) and address resolved."""

    role: Optional[RoleDetails] = None
    address: Optional[Address] = None

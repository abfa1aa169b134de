"""User accounts, their addresses and credential checks.

Public reads return ``User`` (no password hash). ``get_credentials`` is the
only read that exposes the stored hash and is meant for login.
"""

from typing import Any, Iterable, Mapping, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from timberledger.exceptions import InvalidCredentialError, NotFoundError, ValidationError
from timberledger.models.auth import RegisterRequest, UpdateProfileRequest, check_password_strength
from timberledger.models.user import Address, User, UserAccount, UserDetails, UserSummary
from timberledger.repositories.base import Condition, Repository, Where, contains
from timberledger.repositories.role_repository import RoleRepository
from timberledger.services.auth_service import hash_password, verify_password

logger = structlog.get_logger(__name__)


def to_summary(user: User) -> UserSummary:
    """Reduce a user to the fields embedded in related records."""
    return UserSummary(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        email=user.email,
    )


class UserRepository:
    """Repository for user accounts."""

    def __init__(self, roles: Optional[RoleRepository] = None):
        self.users = Repository(UserAccount, "users")
        self.addresses = Repository(Address, "addresses")
        self.roles = roles or RoleRepository()

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_all(self) -> list[User]:
        return [account.to_user() for account in await self.users.find_all()]

    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        account = await self.users.find_by_id(user_id)
        return account.to_user() if account else None

    async def find_by_email(self, email: str) -> Optional[User]:
        account = await self.users.find_one(Where.equals(email=email))
        return account.to_user() if account else None

    async def find_by_username(self, username: str) -> Optional[User]:
        account = await self.users.find_one(Where.equals(username=username))
        return account.to_user() if account else None

    async def find_by_role(self, role_id: UUID) -> list[User]:
        accounts = await self.users.find_all(Where.equals(role_id=role_id))
        return [account.to_user() for account in accounts]

    async def search_users(self, term: str) -> list[User]:
        """Case-insensitive substring search over full name, email and username."""
        pattern = contains(term)
        where = Where(
            any_of=[
                Condition("full_name", pattern, "ilike"),
                Condition("email", pattern, "ilike"),
                Condition("username", pattern, "ilike"),
            ]
        )
        return [account.to_user() for account in await self.users.find_all(where)]

    async def get_credentials(
        self,
        email: Optional[str] = None,
        username: Optional[str] = None,
    ) -> Optional[UserAccount]:
        """Stored account, including password hash, by email or username."""
        if email:
            return await self.users.find_one(Where.equals(email=email))
        if username:
            return await self.users.find_one(Where.equals(username=username))
        return None

    async def get_user_details(self, user_id: UUID) -> Optional[UserDetails]:
        """User with role (and its permission names) and address resolved."""
        user = await self.find_by_id(user_id)
        if user is None:
            return None

        role = await self.roles.get_role_details(user.role_id) if user.role_id else None
        address = await self.addresses.find_by_id(user.address_id) if user.address_id else None
        return UserDetails(**user.model_dump(), role=role, address=address)

    async def summaries(self, user_ids: Iterable[Optional[UUID]]) -> dict[UUID, UserSummary]:
        """Summaries for a set of users, keyed by id. One query."""
        ids = list({uid for uid in user_ids if uid is not None})
        if not ids:
            return {}
        accounts = await self.users.find_all(Where([Condition("id", ids, "in")]))
        return {account.id: to_summary(account) for account in accounts}

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_user(
        self,
        data: RegisterRequest,
        role_id: Optional[UUID] = None,
        address_id: Optional[UUID] = None,
    ) -> User:
        """Register an account.

        Args:
            data: Validated registration payload (plain-text password)
            role_id: Optional role to assign
            address_id: Optional address to attach

        Returns:
            The created user

        Raises:
            ValidationError: If the email or username is already registered
            PersistenceError: If the insert fails
        """
        if await self.find_by_email(data.email) is not None:
            raise ValidationError("Email already registered")
        if data.username and await self.find_by_username(data.username) is not None:
            raise ValidationError("Username already taken")

        account = await self.users.create(
            {
                "email": data.email,
                "username": data.username,
                "full_name": data.full_name,
                "phone": data.phone,
                "password_hash": hash_password(data.password),
                "role_id": role_id,
                "address_id": address_id,
            }
        )
        logger.info("user_created", user_id=str(account.id))
        return account.to_user()

    async def create_address(self, data: Union[Mapping[str, Any], BaseModel]) -> Address:
        return await self.addresses.create(data)

    async def update_profile(self, user_id: UUID, data: UpdateProfileRequest) -> User:
        """Apply a profile update.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If a new username is already taken
        """
        current = await self.find_by_id(user_id)
        if current is None:
            raise NotFoundError(f"User with ID {user_id} not found")

        values = data.model_dump(exclude_unset=True)
        new_username = values.get("username")
        if new_username and new_username != current.username:
            if await self.find_by_username(new_username) is not None:
                raise ValidationError("Username already taken")

        account = await self.users.update(user_id, values)
        return account.to_user()

    async def update_password(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        """Replace a user's password after checking the current one.

        Raises:
            NotFoundError: If the user does not exist
            InvalidCredentialError: If ``current_password`` does not match
            ValidationError: If ``new_password`` is too weak
        """
        account = await self.users.find_by_id(user_id)
        if account is None:
            raise NotFoundError(f"User with ID {user_id} not found")
        if not verify_password(current_password, account.password_hash):
            raise InvalidCredentialError("Current password is incorrect")
        try:
            check_password_strength(new_password)
        except ValueError as e:
            raise ValidationError(str(e))

        await self.users.update(user_id, {"password_hash": hash_password(new_password)})
        logger.info("user_password_changed", user_id=str(user_id))

    async def delete_user(self, user_id: UUID) -> bool:
        return await self.users.delete(user_id)

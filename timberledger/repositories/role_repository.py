"""Roles, permissions and the grants between them."""

from typing import Optional
from uuid import UUID

import structlog

from timberledger.exceptions import NotFoundError, ValidationError
from timberledger.models.user import Permission, Role, RoleDetails, RolePermission
from timberledger.repositories.base import Condition, Repository, Where

logger = structlog.get_logger(__name__)


class RoleRepository:
    """Role and permission catalog plus role/permission grants."""

    def __init__(self):
        self.roles = Repository(Role, "roles")
        self.permissions = Repository(Permission, "permissions")
        self.grants = Repository(
            RolePermission,
            "role_permissions",
            primary_key=None,
            id_factory=None,
        )

    async def find_by_id(self, role_id: UUID) -> Optional[Role]:
        return await self.roles.find_by_id(role_id)

    async def find_by_name(self, name: str) -> Optional[Role]:
        return await self.roles.find_one(Where.equals(name=name))

    async def find_permission_by_name(self, name: str) -> Optional[Permission]:
        return await self.permissions.find_one(Where.equals(name=name))

    async def list_roles(self) -> list[Role]:
        return await self.roles.find_all()

    async def create_role(self, name: str) -> Role:
        """Create a role with a unique name.

        Raises:
            ValidationError: If the name is empty or already taken
        """
        name = name.strip()
        if not name:
            raise ValidationError("Role name must not be empty")
        if await self.find_by_name(name) is not None:
            raise ValidationError(f"Role '{name}' already exists")
        return await self.roles.create({"name": name})

    async def create_permission(self, name: str) -> Permission:
        """Create a permission with a unique name.

        Raises:
            ValidationError: If the name is empty or already taken
        """
        name = name.strip()
        if not name:
            raise ValidationError("Permission name must not be empty")
        if await self.find_permission_by_name(name) is not None:
            raise ValidationError(f"Permission '{name}' already exists")
        return await self.permissions.create({"name": name})

    async def grant(self, role_id: UUID, permission_id: UUID) -> RolePermission:
        """Grant a permission to a role. Granting twice is a no-op.

        Raises:
            NotFoundError: If the role or permission does not exist
        """
        if await self.roles.find_by_id(role_id) is None:
            raise NotFoundError(f"Role with ID {role_id} not found")
        if await self.permissions.find_by_id(permission_id) is None:
            raise NotFoundError(f"Permission with ID {permission_id} not found")

        existing = await self.grants.find_one(
            Where.equals(role_id=role_id, permission_id=permission_id)
        )
        if existing is not None:
            return existing

        grant = await self.grants.create({"role_id": role_id, "permission_id": permission_id})
        logger.info(
            "permission_granted",
            role_id=str(role_id),
            permission_id=str(permission_id),
        )
        return grant

    async def revoke(self, role_id: UUID, permission_id: UUID) -> bool:
        """Remove a grant. Returns False when there was nothing to remove."""
        deleted = await self.grants.delete_where(
            Where.equals(role_id=role_id, permission_id=permission_id)
        )
        return deleted > 0

    async def get_permission_names(self, role_id: UUID) -> list[str]:
        """Names of all permissions granted to a role, sorted."""
        grants = await self.grants.find_all(Where.equals(role_id=role_id))
        if not grants:
            return []
        permissions = await self.permissions.find_all(
            Where([Condition("id", [g.permission_id for g in grants], "in")])
        )
        return sorted(p.name for p in permissions)

    async def get_role_details(self, role_id: UUID) -> Optional[RoleDetails]:
        """Role with its permission names, or None."""
        role = await self.roles.find_by_id(role_id)
        if role is None:
            return None
        return RoleDetails(
            **role.model_dump(),
            permissions=await self.get_permission_names(role_id),
        )

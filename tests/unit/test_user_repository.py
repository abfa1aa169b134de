"""Unit tests for UserRepository and RoleRepository."""

from uuid import uuid4

import pytest

from timberledger.exceptions import InvalidCredentialError, NotFoundError, ValidationError
from timberledger.models.auth import RegisterRequest, UpdateProfileRequest
from timberledger.models.user import User, UserAccount
from timberledger.repositories.role_repository import RoleRepository
from timberledger.repositories.user_repository import UserRepository
from timberledger.services.auth_service import hash_password, verify_password
from tests.conftest import executed_sql, now, user_row


@pytest.fixture
def users():
    return UserRepository()


@pytest.fixture
def roles():
    return RoleRepository()


def _registration(**overrides):
    data = {
        "email": "alice@example.com",
        "password": "Str0ng@pass",
        "username": "alice",
        "full_name": "Alice Nguyen",
    }
    data.update(overrides)
    return RegisterRequest(**data)


def _named_row(name, row_id=None):
    return {"id": row_id or uuid4(), "name": name, "created_at": now()}


# ---------------------------------------------------------------------------
# UserRepository
# ---------------------------------------------------------------------------

class TestCreateUser:
    """Registration checks uniqueness and stores only a hash."""

    async def test_duplicate_email_rejected(self, users, conn):
        conn.fetchrow.return_value = user_row()

        with pytest.raises(ValidationError, match="Email already registered"):
            await users.create_user(_registration())

        assert not any(sql.startswith("INSERT") for sql in executed_sql(conn.fetchrow))

    async def test_duplicate_username_rejected(self, users, conn):
        conn.fetchrow.side_effect = [None, user_row(email="other@example.com")]

        with pytest.raises(ValidationError, match="Username already taken"):
            await users.create_user(_registration())

    async def test_stores_bcrypt_hash_and_returns_public_user(self, users, conn):
        conn.fetchrow.side_effect = [None, None, user_row()]

        user = await users.create_user(_registration())

        assert type(user) is User
        assert "password_hash" not in user.model_dump()
        insert = conn.fetchrow.await_args_list[2].args
        assert insert[0].startswith("INSERT INTO users")
        assert "Str0ng@pass" not in insert
        stored_hash = next(arg for arg in insert[1:] if isinstance(arg, str) and arg.startswith("$2"))
        assert verify_password("Str0ng@pass", stored_hash)

    async def test_username_optional(self, users, conn):
        conn.fetchrow.side_effect = [None, user_row(username=None)]

        user = await users.create_user(_registration(username=None))

        assert user.username is None
        assert conn.fetchrow.await_count == 2


class TestUserReads:
    async def test_get_credentials_exposes_hash(self, users, conn):
        conn.fetchrow.return_value = user_row()

        account = await users.get_credentials(email="alice@example.com")

        assert isinstance(account, UserAccount)
        assert account.password_hash.startswith("$2b$")

    async def test_get_credentials_without_identifier(self, users, conn):
        assert await users.get_credentials() is None
        conn.fetchrow.assert_not_awaited()

    async def test_user_details_include_role_permissions_and_address(self, users, conn):
        role_id = uuid4()
        address_id = uuid4()
        manage, write = uuid4(), uuid4()
        conn.fetchrow.side_effect = [
            user_row(role_id=role_id, address_id=address_id),
            _named_row("admin", role_id),
            {"id": address_id, "province": "Ha Noi", "district": None,
             "commune": None, "details": None, "created_at": now()},
        ]
        conn.fetch.side_effect = [
            [{"role_id": role_id, "permission_id": manage},
             {"role_id": role_id, "permission_id": write}],
            [_named_row("wood_lots:write", write), _named_row("users:manage", manage)],
        ]

        details = await users.get_user_details(uuid4())

        assert details.role.name == "admin"
        assert details.role.permissions == ["users:manage", "wood_lots:write"]
        assert details.address.province == "Ha Noi"
        assert "password_hash" not in details.model_dump()

    async def test_search_covers_name_email_and_username(self, users, conn):
        conn.fetch.return_value = []

        await users.search_users("ali")

        conn.fetch.assert_awaited_once_with(
            "SELECT * FROM users WHERE "
            "(full_name ILIKE $1 OR email ILIKE $2 OR username ILIKE $3)",
            "%ali%",
            "%ali%",
            "%ali%",
        )

    async def test_summaries_keyed_by_id(self, users, conn):
        row = user_row()
        conn.fetch.return_value = [row]

        summaries = await users.summaries([row["id"], row["id"], None])

        assert list(summaries) == [row["id"]]
        assert conn.fetch.await_args.args[1] == [row["id"]]


class TestUpdateProfile:
    async def test_taken_username_rejected(self, users, conn):
        conn.fetchrow.side_effect = [user_row(), user_row(username="bob")]

        with pytest.raises(ValidationError):
            await users.update_profile(uuid4(), UpdateProfileRequest(username="bob"))

    async def test_missing_user(self, users, conn):
        conn.fetchrow.return_value = None

        with pytest.raises(NotFoundError):
            await users.update_profile(uuid4(), UpdateProfileRequest(full_name="A"))

    async def test_only_provided_fields_written(self, users, conn):
        row = user_row()
        conn.fetchrow.side_effect = [row, row, {**row, "full_name": "Alice N."}]

        user = await users.update_profile(row["id"], UpdateProfileRequest(full_name="Alice N."))

        assert user.full_name == "Alice N."
        sql = conn.fetchrow.await_args_list[2].args[0]
        assert sql == "UPDATE users SET full_name = $2, updated_at = $3 WHERE id = $1 RETURNING *"


class TestUpdatePassword:
    async def test_wrong_current_password(self, users, conn):
        conn.fetchrow.return_value = user_row(password_hash=hash_password("Current@123"))

        with pytest.raises(InvalidCredentialError):
            await users.update_password(uuid4(), "Wrong@1234", "Newpass@123")

        assert conn.fetchrow.await_count == 1

    async def test_weak_new_password(self, users, conn):
        conn.fetchrow.return_value = user_row(password_hash=hash_password("Current@123"))

        with pytest.raises(ValidationError):
            await users.update_password(uuid4(), "Current@123", "weak")

    async def test_stores_new_hash(self, users, conn):
        row = user_row(password_hash=hash_password("Current@123"))
        conn.fetchrow.side_effect = [row, row, row]

        await users.update_password(row["id"], "Current@123", "Newpass@123")

        update = conn.fetchrow.await_args_list[2].args
        assert update[0].startswith("UPDATE users SET password_hash = $2")
        assert verify_password("Newpass@123", update[2])

    async def test_missing_user(self, users, conn):
        conn.fetchrow.return_value = None

        with pytest.raises(NotFoundError):
            await users.update_password(uuid4(), "Current@123", "Newpass@123")


# ---------------------------------------------------------------------------
# RoleRepository
# ---------------------------------------------------------------------------

class TestRoles:
    async def test_duplicate_role_name_rejected(self, roles, conn):
        conn.fetchrow.return_value = _named_row("admin")

        with pytest.raises(ValidationError, match="already exists"):
            await roles.create_role("admin")

    async def test_empty_permission_name_rejected(self, roles, conn):
        with pytest.raises(ValidationError):
            await roles.create_permission("   ")
        conn.fetchrow.assert_not_awaited()

    async def test_grant_is_idempotent(self, roles, conn):
        role_id, permission_id = uuid4(), uuid4()
        conn.fetchrow.side_effect = [
            _named_row("admin", role_id),
            _named_row("users:manage", permission_id),
            {"role_id": role_id, "permission_id": permission_id},
        ]

        grant = await roles.grant(role_id, permission_id)

        assert grant.permission_id == permission_id
        assert not any(sql.startswith("INSERT") for sql in executed_sql(conn.fetchrow))

    async def test_grant_inserts_without_generated_key(self, roles, conn):
        role_id, permission_id = uuid4(), uuid4()
        conn.fetchrow.side_effect = [
            _named_row("admin", role_id),
            _named_row("users:manage", permission_id),
            None,
            {"role_id": role_id, "permission_id": permission_id},
        ]

        await roles.grant(role_id, permission_id)

        assert conn.fetchrow.await_args_list[3].args == (
            "INSERT INTO role_permissions (role_id, permission_id) VALUES ($1, $2) RETURNING *",
            role_id,
            permission_id,
        )

    async def test_grant_unknown_role(self, roles, conn):
        conn.fetchrow.return_value = None

        with pytest.raises(NotFoundError):
            await roles.grant(uuid4(), uuid4())

    async def test_revoke(self, roles, conn):
        role_id, permission_id = uuid4(), uuid4()
        conn.execute.return_value = "DELETE 1"

        assert await roles.revoke(role_id, permission_id) is True
        conn.execute.assert_awaited_once_with(
            "DELETE FROM role_permissions WHERE role_id = $1 AND permission_id = $2",
            role_id,
            permission_id,
        )

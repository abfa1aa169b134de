"""Unit tests for the database setup and sample data command."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, call, patch
from uuid import uuid4

import pytest
from click.testing import CliRunner

from timberledger.exceptions import PersistenceError
from timberledger.models.transaction import TransactionStatus
from timberledger.seed import (
    ROLE_PERMISSIONS,
    SAMPLE_SPECIES,
    SAMPLE_USERS,
    SeedContext,
    _run,
    main,
    seed_sample_data,
)


def _record(*args, **kwargs):
    return SimpleNamespace(id=uuid4())


@pytest.fixture
def repos():
    """SeedRepositories stand-in whose create methods return fresh ids."""
    repos = MagicMock()
    repos.roles.create_role = AsyncMock(side_effect=_record)
    repos.roles.create_permission = AsyncMock(side_effect=_record)
    repos.roles.grant = AsyncMock()
    repos.users.create_address = AsyncMock(side_effect=_record)
    repos.users.create_user = AsyncMock(side_effect=_record)
    repos.species.create_wood_species = AsyncMock(side_effect=_record)
    repos.lots.create_wood_lot = AsyncMock(side_effect=_record)
    repos.transactions.create_transaction = AsyncMock(side_effect=_record)
    return repos


class TestSeedContext:
    def test_remember_and_lookup(self):
        ctx = SeedContext()
        record_id = uuid4()

        ctx.remember("user:admin", record_id)

        assert ctx.id_of("user:admin") == record_id

    def test_duplicate_name_rejected(self):
        ctx = SeedContext()
        ctx.remember("user:admin", uuid4())

        with pytest.raises(ValueError, match="already used"):
            ctx.remember("user:admin", uuid4())

    def test_unknown_name(self):
        with pytest.raises(KeyError, match="user:ghost"):
            SeedContext().id_of("user:ghost")


class TestSeedSampleData:
    async def test_every_record_is_remembered(self, repos):
        ctx = await seed_sample_data(SeedContext(), repos)

        permissions = {name for names in ROLE_PERMISSIONS.values() for name in names}
        expected = (
            len(ROLE_PERMISSIONS)
            + len(permissions)
            + 1  # head office address
            + len(SAMPLE_USERS)
            + len(SAMPLE_SPECIES)
            + 3  # wood lots
            + 2  # transactions
        )
        assert len(ctx.ids) == expected

    async def test_shared_permissions_created_once(self, repos):
        await seed_sample_data(SeedContext(), repos)

        created = [c.args[0] for c in repos.roles.create_permission.await_args_list]
        assert sorted(created) == sorted(set(created))
        grants = sum(len(names) for names in ROLE_PERMISSIONS.values())
        assert repos.roles.grant.await_count == grants

    async def test_users_linked_to_roles(self, repos):
        ctx = await seed_sample_data(SeedContext(), repos)

        admin_call = repos.users.create_user.await_args_list[0]
        assert admin_call.args[0].email == "admin@woodwork.com"
        assert admin_call.kwargs["role_id"] == ctx.id_of("role:admin")
        assert admin_call.kwargs["address_id"] == ctx.id_of("address:head_office")

        trader_call = repos.users.create_user.await_args_list[2]
        assert trader_call.kwargs["role_id"] == ctx.id_of("role:trader")
        assert trader_call.kwargs["address_id"] is None

    async def test_lots_and_transactions_reference_earlier_records(self, repos):
        ctx = await seed_sample_data(SeedContext(), repos)

        teak_lot = repos.lots.create_wood_lot.await_args_list[0]
        assert teak_lot.args[0].species_id == ctx.id_of("species:teak")
        assert teak_lot.args[0].quantity == 8.2
        assert teak_lot.kwargs["created_by_id"] == ctx.id_of("user:manager")

        teak_sale, pine_sale = repos.transactions.create_transaction.await_args_list
        assert teak_sale.args[0].wood_lot_id == ctx.id_of("lot:teak_nghe_an")
        assert teak_sale.args[0].buyer_id == ctx.id_of("user:trader")
        assert teak_sale.args[0].status is None
        assert pine_sale.args[0].status is TransactionStatus.COMPLETED

    async def test_failure_stops_later_steps(self, repos):
        repos.species.create_wood_species = AsyncMock(
            side_effect=PersistenceError("Failed to insert into wood_species")
        )

        with pytest.raises(PersistenceError):
            await seed_sample_data(SeedContext(), repos)

        repos.lots.create_wood_lot.assert_not_awaited()


class TestRun:
    @pytest.fixture
    def database(self):
        with (
            patch("timberledger.seed.init_database", new_callable=AsyncMock) as init,
            patch("timberledger.seed.drop_tables", new_callable=AsyncMock) as drop,
            patch("timberledger.seed.run_migrations", new_callable=AsyncMock) as migrate,
            patch("timberledger.seed.close_database", new_callable=AsyncMock) as close,
        ):
            migrate.return_value = ["001_initial_schema.sql"]
            yield SimpleNamespace(init=init, drop=drop, migrate=migrate, close=close)

    async def test_migrate_only(self, database):
        ctx = await _run(force=False, seed=False)

        assert ctx.ids == {}
        database.init.assert_awaited_once()
        database.drop.assert_not_awaited()
        database.migrate.assert_awaited_once()
        database.close.assert_awaited_once()

    async def test_force_drops_before_migrating(self, database):
        order = MagicMock()
        order.attach_mock(database.drop, "drop")
        order.attach_mock(database.migrate, "migrate")

        await _run(force=True, seed=False)

        assert order.mock_calls == [call.drop(), call.migrate()]

    async def test_seed_runs_sample_data(self, database, repos):
        with (
            patch("timberledger.seed.SeedRepositories.create", return_value=repos),
            patch("timberledger.seed.seed_sample_data", new_callable=AsyncMock) as seed,
        ):
            seed.return_value = SeedContext({"role:admin": uuid4()})

            ctx = await _run(force=False, seed=True)

        assert list(ctx.ids) == ["role:admin"]
        assert seed.await_args.args[1] is repos

    async def test_pool_closed_on_failure(self, database):
        database.migrate.side_effect = PersistenceError("Migration failed")

        with pytest.raises(PersistenceError):
            await _run(force=False, seed=False)

        database.close.assert_awaited_once()


class TestCommand:
    @pytest.fixture(autouse=True)
    def quiet_logging(self):
        with patch("timberledger.seed.configure_logging"):
            yield

    def test_reports_seeded_records(self):
        ctx = SeedContext({"role:admin": uuid4(), "user:admin": uuid4()})
        with patch("timberledger.seed._run", new_callable=AsyncMock, return_value=ctx) as run:
            result = CliRunner().invoke(main, ["--force", "--seed"])

        assert result.exit_code == 0
        assert "Database ready." in result.output
        assert "Seeded 2 records." in result.output
        run.assert_awaited_once_with(True, True)

    def test_migrate_only_output(self):
        with patch("timberledger.seed._run", new_callable=AsyncMock, return_value=SeedContext()):
            result = CliRunner().invoke(main, [])

        assert result.exit_code == 0
        assert "Seeded" not in result.output

    def test_failure_exits_non_zero(self):
        with patch(
            "timberledger.seed._run",
            new_callable=AsyncMock,
            side_effect=PersistenceError("Failed to connect to database"),
        ):
            result = CliRunner().invoke(main, ["--seed"])

        assert result.exit_code == 1
        assert "Database ready." not in result.output

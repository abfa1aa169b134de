"""Database setup and sample data.

Usage:
    timberledger-seed            apply migrations
    timberledger-seed --force    drop all tables first, then migrate
    timberledger-seed --seed     also insert sample roles, users, species,
                                 wood lots and transactions

Each seeding step receives a ``SeedContext`` and returns it with the ids it
created recorded under logical names, so later steps can link to earlier
records without querying for them again.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

import click
import structlog

from timberledger.config import get_settings
from timberledger.database import close_database, drop_tables, init_database, run_migrations
from timberledger.exceptions import AppError
from timberledger.models.auth import RegisterRequest
from timberledger.models.transaction import TransactionCreate, TransactionStatus
from timberledger.models.wood import (
    ConservationStatus,
    WoodLotCreate,
    WoodQuality,
    WoodSpeciesCreate,
)
from timberledger.repositories.role_repository import RoleRepository
from timberledger.repositories.transaction_repository import TransactionRepository
from timberledger.repositories.user_repository import UserRepository
from timberledger.repositories.wood_lot_repository import WoodLotRepository
from timberledger.repositories.wood_species_repository import WoodSpeciesRepository
from timberledger.services.logging_service import configure_logging

logger = structlog.get_logger(__name__)


@dataclass
class SeedContext:
    """Ids of seeded records, keyed by logical name (e.g. ``"user:admin"``)."""

    ids: dict[str, UUID] = field(default_factory=dict)

    def remember(self, name: str, record_id: UUID) -> None:
        if name in self.ids:
            raise ValueError(f"Seed name '{name}' is already used")
        self.ids[name] = record_id

    def id_of(self, name: str) -> UUID:
        try:
            return self.ids[name]
        except KeyError:
            raise KeyError(f"Nothing seeded under '{name}' yet") from None


@dataclass
class SeedRepositories:
    """Repositories shared by all seeding steps."""

    roles: RoleRepository
    users: UserRepository
    species: WoodSpeciesRepository
    lots: WoodLotRepository
    transactions: TransactionRepository

    @classmethod
    def create(cls) -> "SeedRepositories":
        roles = RoleRepository()
        users = UserRepository(roles=roles)
        species = WoodSpeciesRepository()
        lots = WoodLotRepository(species=species, users=users)
        return cls(
            roles=roles,
            users=users,
            species=species,
            lots=lots,
            transactions=TransactionRepository(lots=lots, users=users),
        )


ROLE_PERMISSIONS = {
    "admin": ["users:manage", "wood_species:write", "wood_lots:write", "transactions:write"],
    "trader": ["wood_lots:write", "transactions:write"],
}

SAMPLE_USERS = [
    {
        "key": "admin",
        "role": "admin",
        "email": "admin@woodwork.com",
        "username": "admin",
        "full_name": "Admin User",
        "password": "Admin@123",
    },
    {
        "key": "manager",
        "role": "admin",
        "email": "manager@woodwork.com",
        "username": "manager",
        "full_name": "Manager User",
        "password": "Manager@123",
    },
    {
        "key": "trader",
        "role": "trader",
        "email": "user@woodwork.com",
        "username": "trader",
        "full_name": "Regular User",
        "password": "User@1234",
    },
]

SAMPLE_SPECIES = [
    ("teak", "Tectona grandis", "Teak", ConservationStatus.COMMON),
    ("rosewood", "Dalbergia cochinchinensis", "Siamese rosewood", ConservationStatus.CITES),
    ("pine", "Pinus kesiya", "Khasi pine", ConservationStatus.COMMON),
    ("padauk", "Afzelia xylocarpa", "Burma padauk", ConservationStatus.ENDANGERED),
]


async def seed_roles(ctx: SeedContext, repos: SeedRepositories) -> SeedContext:
    """Create roles and permissions and grant them."""
    for role_name, permission_names in ROLE_PERMISSIONS.items():
        role = await repos.roles.create_role(role_name)
        ctx.remember(f"role:{role_name}", role.id)

        for permission_name in permission_names:
            key = f"permission:{permission_name}"
            if key not in ctx.ids:
                permission = await repos.roles.create_permission(permission_name)
                ctx.remember(key, permission.id)
            await repos.roles.grant(role.id, ctx.id_of(key))

    logger.info("seed_roles_created", count=len(ROLE_PERMISSIONS))
    return ctx


async def seed_users(ctx: SeedContext, repos: SeedRepositories) -> SeedContext:
    """Create sample accounts; the admin gets a sample address."""
    address = await repos.users.create_address(
        {"province": "Ha Noi", "district": "Ba Dinh", "details": "1 Timber Street"}
    )
    ctx.remember("address:head_office", address.id)

    for sample in SAMPLE_USERS:
        user = await repos.users.create_user(
            RegisterRequest(
                email=sample["email"],
                username=sample["username"],
                full_name=sample["full_name"],
                password=sample["password"],
            ),
            role_id=ctx.id_of(f"role:{sample['role']}"),
            address_id=ctx.id_of("address:head_office") if sample["key"] == "admin" else None,
        )
        ctx.remember(f"user:{sample['key']}", user.id)

    logger.info("seed_users_created", count=len(SAMPLE_USERS))
    return ctx


async def seed_species(ctx: SeedContext, repos: SeedRepositories) -> SeedContext:
    for key, scientific_name, common_name, status in SAMPLE_SPECIES:
        species = await repos.species.create_wood_species(
            WoodSpeciesCreate(
                scientific_name=scientific_name,
                common_name=common_name,
                conservation_status=status,
            )
        )
        ctx.remember(f"species:{key}", species.id)

    logger.info("seed_species_created", count=len(SAMPLE_SPECIES))
    return ctx


async def seed_wood_lots(ctx: SeedContext, repos: SeedRepositories) -> SeedContext:
    lots = [
        ("teak_nghe_an", "teak", "Nghe An, Vietnam", 8.2, WoodQuality.HIGH),
        ("pine_lam_dong", "pine", "Lam Dong, Vietnam", 24.5, WoodQuality.MEDIUM),
        ("padauk_gia_lai", "padauk", "Gia Lai, Vietnam", 3.0, WoodQuality.HIGH),
    ]
    for key, species_key, origin, quantity, quality in lots:
        lot = await repos.lots.create_wood_lot(
            WoodLotCreate(
                species_id=ctx.id_of(f"species:{species_key}"),
                origin=origin,
                quantity=quantity,
                quality=quality,
            ),
            created_by_id=ctx.id_of("user:manager"),
        )
        ctx.remember(f"lot:{key}", lot.id)

    logger.info("seed_wood_lots_created", count=len(lots))
    return ctx


async def seed_transactions(ctx: SeedContext, repos: SeedRepositories) -> SeedContext:
    transactions = [
        ("teak_sale", "teak_nghe_an", "trader", "manager", Decimal("28700000"), None),
        (
            "pine_sale",
            "pine_lam_dong",
            "trader",
            "admin",
            Decimal("41000000"),
            TransactionStatus.COMPLETED,
        ),
    ]
    for key, lot_key, buyer_key, seller_key, price, status in transactions:
        transaction = await repos.transactions.create_transaction(
            TransactionCreate(
                wood_lot_id=ctx.id_of(f"lot:{lot_key}"),
                buyer_id=ctx.id_of(f"user:{buyer_key}"),
                seller_id=ctx.id_of(f"user:{seller_key}"),
                price=price,
                status=status,
            ),
            created_by_id=ctx.id_of(f"user:{seller_key}"),
        )
        ctx.remember(f"transaction:{key}", transaction.id)

    logger.info("seed_transactions_created", count=len(transactions))
    return ctx


SEED_STEPS = (seed_roles, seed_users, seed_species, seed_wood_lots, seed_transactions)


async def seed_sample_data(ctx: SeedContext, repos: SeedRepositories) -> SeedContext:
    """Run every seeding step in dependency order."""
    for step in SEED_STEPS:
        ctx = await step(ctx, repos)
    return ctx


async def _run(force: bool, seed: bool) -> SeedContext:
    await init_database()
    try:
        if force:
            await drop_tables()
        applied = await run_migrations()
        logger.info("seed_migrations_applied", migrations=applied)

        ctx = SeedContext()
        if seed:
            ctx = await seed_sample_data(ctx, SeedRepositories.create())
        return ctx
    finally:
        await close_database()


@click.command()
@click.option("--force", is_flag=True, help="Drop all tables before migrating.")
@click.option("--seed", is_flag=True, help="Insert sample data after migrating.")
def main(force: bool, seed: bool) -> None:
    """Create the schema and optionally load sample data."""
    configure_logging(get_settings().log_level)

    try:
        ctx = asyncio.run(_run(force, seed))
    except AppError as e:
        logger.error("seed_failed", error=e.message)
        click.echo(f"Seeding failed: {e.message}", err=True)
        sys.exit(1)

    click.echo("Database ready.")
    if seed:
        click.echo(f"Seeded {len(ctx.ids)} records.")


if __name__ == "__main__":
    main()

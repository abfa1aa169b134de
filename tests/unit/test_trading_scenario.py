"""End-to-end walk through the repositories for one teak sale.

Catalogue Tectona grandis, reject the duplicate, record a lot, reject bad
quantities and prices, sell the lot and refuse edits once it is Completed.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from timberledger.exceptions import ValidationError
from timberledger.models.transaction import (
    TransactionCreate,
    TransactionStatus,
    TransactionUpdate,
)
from timberledger.models.wood import WoodLotCreate, WoodSpeciesCreate
from timberledger.repositories.transaction_repository import TransactionRepository
from timberledger.repositories.wood_lot_repository import WoodLotRepository
from timberledger.repositories.wood_species_repository import WoodSpeciesRepository
from tests.conftest import executed_sql, lot_row, species_row, transaction_row


async def test_teak_sale(conn):
    species_repository = WoodSpeciesRepository()
    lot_repository = WoodLotRepository(species=species_repository)
    transaction_repository = TransactionRepository(lots=lot_repository)
    manager_id, trader_id = uuid4(), uuid4()

    teak = species_row(scientific_name="Tectona grandis", common_name="Teak")
    conn.fetchrow.side_effect = [None, teak]
    species = await species_repository.create_wood_species(
        WoodSpeciesCreate(scientific_name="Tectona grandis", common_name="Teak")
    )
    assert species.id == teak["id"]

    conn.fetchrow.side_effect = [teak]
    with pytest.raises(ValidationError, match="already exists"):
        await species_repository.create_wood_species(
            WoodSpeciesCreate(scientific_name="Tectona grandis")
        )

    lot_record = lot_row(quantity=8.2, species_id=species.id, created_by_id=manager_id)
    conn.fetchrow.side_effect = [lot_record]
    lot = await lot_repository.create_wood_lot(
        WoodLotCreate(species_id=species.id, origin="Nghe An, Vietnam", quantity=8.2),
        created_by_id=manager_id,
    )
    assert lot.quantity == 8.2
    assert lot.unit == "m³"

    with pytest.raises(ValidationError, match="Quantity must be greater than 0"):
        await lot_repository.create_wood_lot(WoodLotCreate(quantity=-1), manager_id)

    with pytest.raises(ValidationError, match="Price must be greater than 0"):
        await transaction_repository.create_transaction(
            TransactionCreate(wood_lot_id=lot.id, price=Decimal("0")), manager_id
        )

    sale_record = transaction_row(
        wood_lot_id=lot.id,
        buyer_id=trader_id,
        seller_id=manager_id,
        price=Decimal("28700000"),
    )
    conn.fetchrow.side_effect = [sale_record]
    sale = await transaction_repository.create_transaction(
        TransactionCreate(
            wood_lot_id=lot.id,
            buyer_id=trader_id,
            seller_id=manager_id,
            price=Decimal("28700000"),
        ),
        manager_id,
    )
    assert sale.status is TransactionStatus.PENDING
    assert sale.price == Decimal("28700000")

    conn.fetchrow.reset_mock()
    conn.fetchrow.side_effect = [{**sale_record, "status": "Completed"}]
    with pytest.raises(ValidationError, match="status Completed"):
        await transaction_repository.update_transaction(
            sale.id, TransactionUpdate(price=Decimal("30000000"))
        )

    assert not any(sql.startswith("UPDATE") for sql in executed_sql(conn.fetchrow))

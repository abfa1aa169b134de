"""Buy/sell transactions over wood lots.

Transactions in a terminal status (Completed, Cancelled) are frozen: edits
and status changes are refused before anything is written.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog

from timberledger.exceptions import NotFoundError, ValidationError
from timberledger.models.filters import TransactionFilter
from timberledger.models.transaction import (
    Transaction,
    TransactionCreate,
    TransactionDetails,
    TransactionStatus,
    TransactionUpdate,
)
from timberledger.repositories.base import Repository, Where, coerce_enum
from timberledger.repositories.user_repository import UserRepository
from timberledger.repositories.wood_lot_repository import WoodLotRepository

logger = structlog.get_logger(__name__)


CENT = Decimal("0.01")


def _check_price(price: Optional[Decimal]) -> None:
    """Prices are stored as NUMERIC(15, 2); anything finer would be rounded."""
    if price is None:
        return
    if not price.is_finite() or price <= 0:
        raise ValidationError("Price must be greater than 0")
    if price != price.quantize(CENT):
        raise ValidationError("Price must have at most 2 decimal places")


def _check_editable(transaction: Transaction) -> None:
    if transaction.status.is_terminal:
        raise ValidationError(
            f"Cannot modify a transaction with status {transaction.status.value}"
        )


class TransactionRepository:
    """Repository for transactions and their lot/party details."""

    def __init__(
        self,
        lots: Optional[WoodLotRepository] = None,
        users: Optional[UserRepository] = None,
    ):
        self.transactions = Repository(Transaction, "transactions")
        self.users = users or UserRepository()
        self.lots = lots or WoodLotRepository(users=self.users)

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_all(self) -> list[Transaction]:
        return await self.transactions.find_all()

    async def find_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        return await self.transactions.find_by_id(transaction_id)

    async def find_all_with_details(self) -> list[TransactionDetails]:
        return await self._with_details(await self.transactions.find_all())

    async def get_transaction_details(self, transaction_id: UUID) -> Optional[TransactionDetails]:
        transaction = await self.transactions.find_by_id(transaction_id)
        if transaction is None:
            return None
        return (await self._with_details([transaction]))[0]

    async def find_by_buyer(self, buyer_id: UUID) -> list[TransactionDetails]:
        return await self._find(Where.equals(buyer_id=buyer_id))

    async def find_by_seller(self, seller_id: UUID) -> list[TransactionDetails]:
        return await self._find(Where.equals(seller_id=seller_id))

    async def find_by_wood_lot(self, wood_lot_id: UUID) -> list[TransactionDetails]:
        return await self._find(Where.equals(wood_lot_id=wood_lot_id))

    async def find_by_status(
        self,
        status: Union[str, TransactionStatus],
    ) -> list[TransactionDetails]:
        """Transactions in the given status.

        Raises:
            ValidationError: If ``status`` is not a known transaction status
        """
        status = coerce_enum(TransactionStatus, status, "transaction status")
        return await self._find(Where.equals(status=status))

    async def filter_transactions(self, options: TransactionFilter) -> list[TransactionDetails]:
        """Transactions matching every set field of ``options``. Bounds are inclusive."""
        where = Where()
        for column in ("wood_lot_id", "buyer_id", "seller_id", "status", "created_by_id"):
            value = getattr(options, column)
            if value is not None:
                where.add(column, value)
        if options.date_start is not None:
            where.add("transaction_date", options.date_start, "gte")
        if options.date_end is not None:
            where.add("transaction_date", options.date_end, "lte")
        if options.min_price is not None:
            where.add("price", options.min_price, "gte")
        if options.max_price is not None:
            where.add("price", options.max_price, "lte")
        return await self._find(where)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_transaction(
        self,
        data: TransactionCreate,
        created_by_id: Optional[UUID],
    ) -> Transaction:
        """Record a transaction.

        Status defaults to Pending and the transaction date to now (UTC).

        Raises:
            ValidationError: If a price is given and is not positive
            PersistenceError: If the insert fails
        """
        _check_price(data.price)

        values = data.model_dump()
        values["status"] = data.status or TransactionStatus.PENDING
        values["transaction_date"] = data.transaction_date or datetime.now(timezone.utc)
        values["created_by_id"] = created_by_id

        transaction = await self.transactions.create(values)
        logger.info(
            "transaction_created",
            transaction_id=str(transaction.id),
            status=transaction.status.value,
        )
        return transaction

    async def update_transaction(self, transaction_id: UUID, data: TransactionUpdate) -> Transaction:
        """Edit a non-terminal transaction.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If it is Completed or Cancelled, or the price is not positive
        """
        existing = await self._require(transaction_id)
        _check_editable(existing)
        _check_price(data.price)
        return await self.transactions.update(transaction_id, data)

    async def update_status(
        self,
        transaction_id: UUID,
        status: Union[str, TransactionStatus],
    ) -> Transaction:
        """Move a non-terminal transaction to ``status``.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If the status is unknown or the transaction is terminal
        """
        status = coerce_enum(TransactionStatus, status, "transaction status")
        existing = await self._require(transaction_id)
        _check_editable(existing)

        transaction = await self.transactions.update(transaction_id, {"status": status})
        logger.info(
            "transaction_status_changed",
            transaction_id=str(transaction_id),
            from_status=existing.status.value,
            to_status=status.value,
        )
        return transaction

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _require(self, transaction_id: UUID) -> Transaction:
        transaction = await self.transactions.find_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction with ID {transaction_id} not found")
        return transaction

    async def _find(self, where: Where) -> list[TransactionDetails]:
        return await self._with_details(await self.transactions.find_all(where))

    async def _with_details(self, transactions: list[Transaction]) -> list[TransactionDetails]:
        if not transactions:
            return []
        lots = await self.lots.details_by_ids(t.wood_lot_id for t in transactions)
        people = await self.users.summaries(
            user_id
            for t in transactions
            for user_id in (t.buyer_id, t.seller_id, t.created_by_id)
        )
        return [
            TransactionDetails(
                **t.model_dump(),
                wood_lot=lots.get(t.wood_lot_id),
                buyer=people.get(t.buyer_id),
                seller=people.get(t.seller_id),
                creator=people.get(t.created_by_id),
            )
            for t in transactions
        ]

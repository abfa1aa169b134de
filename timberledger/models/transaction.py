"""Buy/sell transaction models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from timberledger.models.user import UserSummary
from timberledger.models.wood import WoodLotDetails


class TransactionStatus(str, Enum):
    """Lifecycle status of a transaction."""

    PENDING = "Pending"
    APPROVED = "Approved"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        """Completed and Cancelled transactions can no longer be edited."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.CANCELLED})


class Transaction(BaseModel):
    """A sale of a wood lot between two users."""

    id: UUID
    wood_lot_id: Optional[UUID] = None
    buyer_id: Optional[UUID] = None
    seller_id: Optional[UUID] = None
    price: Optional[Decimal] = None
    transaction_date: Optional[datetime] = None
    status: TransactionStatus = TransactionStatus.PENDING
    created_by_id: Optional[UUID] = None
    created_at: datetime


class TransactionDetails(Transaction):
    """Transaction with wood lot (and species), buyer, seller and creator."""

    wood_lot: Optional[WoodLotDetails] = None
    buyer: Optional[UserSummary] = None
    seller: Optional[UserSummary] = None
    creator: Optional[UserSummary] = None


class TransactionCreate(BaseModel):
    """Request body for creating a transaction."""

    wood_lot_id: Optional[UUID] = None
    buyer_id: Optional[UUID] = None
    seller_id: Optional[UUID] = None
    price: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=2)
    transaction_date: Optional[datetime] = None
    status: Optional[TransactionStatus] = None


class TransactionUpdate(BaseModel):
    """Request body for editing a transaction. Status changes go through
    the dedicated status endpoint."""

    wood_lot_id: Optional[UUID] = None
    buyer_id: Optional[UUID] = None
    seller_id: Optional[UUID] = None
    price: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=2)
    transaction_date: Optional[datetime] = None


class TransactionStatusUpdate(BaseModel):
    """Request body for the status endpoint."""

    status: TransactionStatus

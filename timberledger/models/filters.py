"""Query options for filtered list reads.

Each field is optional; unset fields do not constrain the result.
Range bounds are inclusive.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator

from timberledger.models.transaction import TransactionStatus
from timberledger.models.wood import WoodQuality


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so mixed bounds stay comparable."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WoodLotFilter(BaseModel):
    """Filters accepted by ``WoodLotRepository.filter_wood_lots``."""

    species_id: Optional[UUID] = None
    quality: Optional[WoodQuality] = None
    origin: Optional[str] = None
    created_by_id: Optional[UUID] = None
    harvest_date_start: Optional[datetime] = None
    harvest_date_end: Optional[datetime] = None
    min_quantity: Optional[float] = None
    max_quantity: Optional[float] = None

    @field_validator("harvest_date_start", "harvest_date_end")
    @classmethod
    def harvest_dates_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def bounds_ordered(self) -> "WoodLotFilter":
        """Reject inverted ranges."""
        if (
            self.min_quantity is not None
            and self.max_quantity is not None
            and self.min_quantity > self.max_quantity
        ):
            raise ValueError("min_quantity must not exceed max_quantity")
        if (
            self.harvest_date_start is not None
            and self.harvest_date_end is not None
            and self.harvest_date_start > self.harvest_date_end
        ):
            raise ValueError("harvest_date_start must not be after harvest_date_end")
        return self


class TransactionFilter(BaseModel):
    """Filters accepted by ``TransactionRepository.filter_transactions``."""

    wood_lot_id: Optional[UUID] = None
    buyer_id: Optional[UUID] = None
    seller_id: Optional[UUID] = None
    status: Optional[TransactionStatus] = None
    created_by_id: Optional[UUID] = None
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None

    @field_validator("date_start", "date_end")
    @classmethod
    def dates_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def bounds_ordered(self) -> "TransactionFilter":
        """Reject inverted ranges."""
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price must not exceed max_price")
        if (
            self.date_start is not None
            and self.date_end is not None
            and self.date_start > self.date_end
        ):
            raise ValueError("date_start must not be after date_end")
        return self

"""Wood lot inventory."""

import math
from typing import Iterable, Optional, Union
from uuid import UUID

import structlog

from timberledger.exceptions import ValidationError
from timberledger.models.filters import WoodLotFilter
from timberledger.models.wood import (
    DEFAULT_UNIT,
    WoodLot,
    WoodLotCreate,
    WoodLotDetails,
    WoodLotUpdate,
    WoodQuality,
)
from timberledger.repositories.base import Condition, Repository, Where, coerce_enum, contains
from timberledger.repositories.user_repository import UserRepository
from timberledger.repositories.wood_species_repository import WoodSpeciesRepository

logger = structlog.get_logger(__name__)


def _check_quantity(quantity: Optional[float]) -> None:
    if quantity is None or not math.isfinite(quantity) or quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")


class WoodLotRepository:
    """Repository for wood lots and their species/creator details."""

    def __init__(
        self,
        species: Optional[WoodSpeciesRepository] = None,
        users: Optional[UserRepository] = None,
    ):
        self.lots = Repository(WoodLot, "wood_lots")
        self.species = species or WoodSpeciesRepository()
        self.users = users or UserRepository()

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_all(self) -> list[WoodLot]:
        return await self.lots.find_all()

    async def find_by_id(self, lot_id: UUID) -> Optional[WoodLot]:
        return await self.lots.find_by_id(lot_id)

    async def find_all_with_details(self) -> list[WoodLotDetails]:
        return await self._with_details(await self.lots.find_all())

    async def get_wood_lot_details(self, lot_id: UUID) -> Optional[WoodLotDetails]:
        lot = await self.lots.find_by_id(lot_id)
        if lot is None:
            return None
        return (await self._with_details([lot]))[0]

    async def details_by_ids(self, lot_ids: Iterable[Optional[UUID]]) -> dict[UUID, WoodLotDetails]:
        """Detailed lots keyed by id for a set of ids."""
        ids = list({lid for lid in lot_ids if lid is not None})
        if not ids:
            return {}
        lots = await self.lots.find_all(Where([Condition("id", ids, "in")]))
        return {lot.id: lot for lot in await self._with_details(lots)}

    async def find_by_species(self, species_id: UUID) -> list[WoodLotDetails]:
        return await self._with_details(await self.lots.find_all(Where.equals(species_id=species_id)))

    async def find_by_creator(self, creator_id: UUID) -> list[WoodLotDetails]:
        return await self._with_details(
            await self.lots.find_all(Where.equals(created_by_id=creator_id))
        )

    async def find_by_quality(self, quality: Union[str, WoodQuality]) -> list[WoodLotDetails]:
        """Lots of a given quality grade.

        Raises:
            ValidationError: If ``quality`` is not a known grade
        """
        quality = coerce_enum(WoodQuality, quality, "quality")
        return await self._with_details(await self.lots.find_all(Where.equals(quality=quality)))

    async def find_by_origin(self, origin: str) -> list[WoodLotDetails]:
        """Lots whose origin contains ``origin``, ignoring case."""
        return await self._with_details(
            await self.lots.find_all(Where([Condition("origin", contains(origin), "ilike")]))
        )

    async def filter_wood_lots(self, options: WoodLotFilter) -> list[WoodLotDetails]:
        """Lots matching every set field of ``options``. Bounds are inclusive."""
        where = Where()
        if options.species_id is not None:
            where.add("species_id", options.species_id)
        if options.quality is not None:
            where.add("quality", options.quality)
        if options.origin:
            where.add("origin", contains(options.origin), "ilike")
        if options.created_by_id is not None:
            where.add("created_by_id", options.created_by_id)
        if options.harvest_date_start is not None:
            where.add("harvest_date", options.harvest_date_start, "gte")
        if options.harvest_date_end is not None:
            where.add("harvest_date", options.harvest_date_end, "lte")
        if options.min_quantity is not None:
            where.add("quantity", options.min_quantity, "gte")
        if options.max_quantity is not None:
            where.add("quantity", options.max_quantity, "lte")
        return await self._with_details(await self.lots.find_all(where))

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_wood_lot(self, data: WoodLotCreate, created_by_id: Optional[UUID]) -> WoodLot:
        """Register a new lot.

        Args:
            data: Lot fields; ``unit`` defaults to cubic metres
            created_by_id: Id of the user recording the lot

        Raises:
            ValidationError: If quantity is not positive
            PersistenceError: If the insert fails
        """
        _check_quantity(data.quantity)

        values = data.model_dump()
        values["unit"] = values.get("unit") or DEFAULT_UNIT
        values["created_by_id"] = created_by_id

        lot = await self.lots.create(values)
        logger.info(
            "wood_lot_created",
            lot_id=str(lot.id),
            quantity=lot.quantity,
            unit=lot.unit,
        )
        return lot

    async def update_wood_lot(self, lot_id: UUID, data: WoodLotUpdate) -> WoodLot:
        """Update a lot.

        Raises:
            NotFoundError: If the lot does not exist
            ValidationError: If a provided quantity is not positive
        """
        if "quantity" in data.model_fields_set:
            _check_quantity(data.quantity)
        if "unit" in data.model_fields_set and not data.unit:
            raise ValidationError("Unit must not be empty")
        return await self.lots.update(lot_id, data)

    async def delete_wood_lot(self, lot_id: UUID) -> bool:
        return await self.lots.delete(lot_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _with_details(self, lots: list[WoodLot]) -> list[WoodLotDetails]:
        if not lots:
            return []
        species = await self.species.find_by_ids(lot.species_id for lot in lots)
        creators = await self.users.summaries(lot.created_by_id for lot in lots)
        return [
            WoodLotDetails(
                **lot.model_dump(),
                species=species.get(lot.species_id),
                creator=creators.get(lot.created_by_id),
            )
            for lot in lots
        ]

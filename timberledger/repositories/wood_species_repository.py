"""Wood species catalog."""

from typing import Iterable, Optional, Union
from uuid import UUID

import structlog

from timberledger.exceptions import ValidationError
from timberledger.models.wood import (
    ConservationStatus,
    WoodSpecies,
    WoodSpeciesCreate,
    WoodSpeciesUpdate,
)
from timberledger.repositories.base import Condition, Repository, Where, coerce_enum, contains

logger = structlog.get_logger(__name__)


class WoodSpeciesRepository:
    """Repository for wood species. Scientific names are unique."""

    def __init__(self):
        self.species = Repository(WoodSpecies, "wood_species")

    async def find_all(self) -> list[WoodSpecies]:
        return await self.species.find_all()

    async def find_by_id(self, species_id: UUID) -> Optional[WoodSpecies]:
        return await self.species.find_by_id(species_id)

    async def find_by_ids(self, species_ids: Iterable[Optional[UUID]]) -> dict[UUID, WoodSpecies]:
        """Species keyed by id for a set of ids. One query."""
        ids = list({sid for sid in species_ids if sid is not None})
        if not ids:
            return {}
        rows = await self.species.find_all(Where([Condition("id", ids, "in")]))
        return {species.id: species for species in rows}

    async def find_by_scientific_name(self, scientific_name: str) -> Optional[WoodSpecies]:
        return await self.species.find_one(Where.equals(scientific_name=scientific_name))

    async def find_by_common_name(self, common_name: str) -> list[WoodSpecies]:
        """Species whose common name contains ``common_name``, ignoring case."""
        return await self.species.find_all(
            Where([Condition("common_name", contains(common_name), "ilike")])
        )

    async def find_by_conservation_status(
        self,
        status: Union[str, ConservationStatus],
    ) -> list[WoodSpecies]:
        """Species with the given conservation status.

        Raises:
            ValidationError: If ``status`` is not a known conservation status
        """
        status = coerce_enum(ConservationStatus, status, "conservation status")
        return await self.species.find_all(Where.equals(conservation_status=status))

    async def search_wood_species(self, query: str) -> list[WoodSpecies]:
        """Case-insensitive substring search over scientific and common names."""
        pattern = contains(query)
        return await self.species.find_all(
            Where(
                any_of=[
                    Condition("scientific_name", pattern, "ilike"),
                    Condition("common_name", pattern, "ilike"),
                ]
            )
        )

    async def create_wood_species(self, data: WoodSpeciesCreate) -> WoodSpecies:
        """Add a species to the catalog.

        Raises:
            ValidationError: If the scientific name is already catalogued
            PersistenceError: If the insert fails
        """
        if await self.find_by_scientific_name(data.scientific_name) is not None:
            raise ValidationError(
                f"Wood species with scientific name '{data.scientific_name}' already exists"
            )
        species = await self.species.create(data)
        logger.info(
            "wood_species_created",
            species_id=str(species.id),
            scientific_name=species.scientific_name,
        )
        return species

    async def update_wood_species(self, species_id: UUID, data: WoodSpeciesUpdate) -> WoodSpecies:
        """Update a species.

        Raises:
            NotFoundError: If the species does not exist
            ValidationError: If the new scientific name belongs to another species
        """
        if "scientific_name" in data.model_fields_set and data.scientific_name is None:
            raise ValidationError("Scientific name must not be empty")
        if data.scientific_name is not None:
            existing = await self.find_by_scientific_name(data.scientific_name)
            if existing is not None and existing.id != species_id:
                raise ValidationError(
                    f"Wood species with scientific name '{data.scientific_name}' already exists"
                )
        return await self.species.update(species_id, data)

    async def delete_wood_species(self, species_id: UUID) -> bool:
        return await self.species.delete(species_id)

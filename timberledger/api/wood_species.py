"""Wood species catalog endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from timberledger.api.dependencies import get_current_user_id
from timberledger.api.responses import respond
from timberledger.exceptions import NotFoundError
from timberledger.models.wood import WoodSpeciesCreate, WoodSpeciesUpdate
from timberledger.repositories.wood_species_repository import WoodSpeciesRepository

router = APIRouter(prefix="/api/wood-species", tags=["Wood species"])


@router.get("/")
async def list_wood_species():
    species = await WoodSpeciesRepository().find_all()
    return respond("Wood species retrieved successfully", data=species)


@router.get("/search")
async def search_wood_species(query: str = Query(..., min_length=1)):
    """Search scientific and common names, ignoring case."""
    species = await WoodSpeciesRepository().search_wood_species(query)
    return respond("Wood species search completed", data=species)


@router.get("/status/{conservation_status}")
async def list_by_conservation_status(conservation_status: str):
    """Species with a conservation status; unknown statuses are a 400."""
    species = await WoodSpeciesRepository().find_by_conservation_status(conservation_status)
    return respond("Wood species retrieved successfully", data=species)


@router.get("/{species_id}")
async def get_wood_species(species_id: UUID):
    species = await WoodSpeciesRepository().find_by_id(species_id)
    if species is None:
        raise NotFoundError(f"Wood species with ID {species_id} not found")
    return respond("Wood species retrieved successfully", data=species)


@router.post("/")
async def create_wood_species(
    request: WoodSpeciesCreate,
    user_id: UUID = Depends(get_current_user_id),
):
    """Add a species. Scientific names must be unique."""
    species = await WoodSpeciesRepository().create_wood_species(request)
    return respond(
        "Wood species created successfully",
        data=species,
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{species_id}")
async def update_wood_species(
    species_id: UUID,
    request: WoodSpeciesUpdate,
    user_id: UUID = Depends(get_current_user_id),
):
    species = await WoodSpeciesRepository().update_wood_species(species_id, request)
    return respond("Wood species updated successfully", data=species)


@router.delete("/{species_id}")
async def delete_wood_species(
    species_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
):
    await WoodSpeciesRepository().delete_wood_species(species_id)
    return respond("Wood species deleted successfully")

"""Wood lot inventory endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from timberledger.api.dependencies import get_current_user_id
from timberledger.api.responses import respond
from timberledger.exceptions import NotFoundError
from timberledger.models.filters import WoodLotFilter
from timberledger.models.wood import WoodLotCreate, WoodLotUpdate
from timberledger.repositories.wood_lot_repository import WoodLotRepository

router = APIRouter(prefix="/api/wood-lots", tags=["Wood lots"])


@router.get("/")
async def list_wood_lots():
    """All lots with species and creator."""
    lots = await WoodLotRepository().find_all_with_details()
    return respond("Wood lots retrieved successfully", data=lots)


@router.get("/filter")
async def filter_wood_lots(options: Annotated[WoodLotFilter, Query()]):
    """Lots matching the query-string filters. Range bounds are inclusive."""
    lots = await WoodLotRepository().filter_wood_lots(options)
    return respond("Wood lots filtered successfully", data=lots)


@router.get("/species/{species_id}")
async def list_by_species(species_id: UUID):
    lots = await WoodLotRepository().find_by_species(species_id)
    return respond("Wood lots retrieved successfully", data=lots)


@router.get("/creator/{creator_id}")
async def list_by_creator(creator_id: UUID):
    lots = await WoodLotRepository().find_by_creator(creator_id)
    return respond("Wood lots retrieved successfully", data=lots)


@router.get("/{lot_id}")
async def get_wood_lot(lot_id: UUID):
    lot = await WoodLotRepository().get_wood_lot_details(lot_id)
    if lot is None:
        raise NotFoundError(f"Wood lot with ID {lot_id} not found")
    return respond("Wood lot retrieved successfully", data=lot)


@router.post("/")
async def create_wood_lot(
    request: WoodLotCreate,
    user_id: UUID = Depends(get_current_user_id),
):
    """Record a lot on behalf of the authenticated user."""
    repository = WoodLotRepository()
    lot = await repository.create_wood_lot(request, created_by_id=user_id)
    details = await repository.get_wood_lot_details(lot.id)
    return respond(
        "Wood lot created successfully",
        data=details or lot,
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{lot_id}")
async def update_wood_lot(
    lot_id: UUID,
    request: WoodLotUpdate,
    user_id: UUID = Depends(get_current_user_id),
):
    repository = WoodLotRepository()
    lot = await repository.update_wood_lot(lot_id, request)
    details = await repository.get_wood_lot_details(lot.id)
    return respond("Wood lot updated successfully", data=details or lot)


@router.delete("/{lot_id}")
async def delete_wood_lot(
    lot_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
):
    await WoodLotRepository().delete_wood_lot(lot_id)
    return respond("Wood lot deleted successfully")

"""Wood species and wood lot models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from timberledger.models.user import UserSummary


class ConservationStatus(str, Enum):
    """Conservation classification of a species."""

    COMMON = "Common"
    ENDANGERED = "Endangered"
    RARE = "Rare"
    CITES = "CITES I/II"


class WoodQuality(str, Enum):
    """Grading of a wood lot."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


DEFAULT_UNIT = "m³"


class WoodSpecies(BaseModel):
    """A catalogued wood species."""

    id: UUID
    scientific_name: str
    common_name: Optional[str] = None
    conservation_status: ConservationStatus = ConservationStatus.COMMON
    created_at: datetime


class WoodLot(BaseModel):
    """An inventory lot of harvested wood."""

    id: UUID
    species_id: Optional[UUID] = None
    origin: Optional[str] = None
    quantity: float
    unit: str = DEFAULT_UNIT
    quality: Optional[WoodQuality] = None
    harvest_date: Optional[datetime] = None
    created_by_id: Optional[UUID] = None
    created_at: datetime


class WoodLotDetails(WoodLot):
    """Wood lot with its species and creator resolved."""

    species: Optional[WoodSpecies] = None
    creator: Optional[UserSummary] = None


class WoodSpeciesCreate(BaseModel):
    """Request body for creating a species."""

    scientific_name: str = Field(..., min_length=1, max_length=200)
    common_name: Optional[str] = Field(default=None, max_length=200)
    conservation_status: Optional[ConservationStatus] = None


class WoodSpeciesUpdate(BaseModel):
    """Request body for updating a species. Only provided fields change."""

    scientific_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    common_name: Optional[str] = Field(default=None, max_length=200)
    conservation_status: Optional[ConservationStatus] = None


class WoodLotCreate(BaseModel):
    """Request body for creating a wood lot."""

    species_id: Optional[UUID] = None
    origin: Optional[str] = Field(default=None, max_length=255)
    quantity: float = Field(..., allow_inf_nan=False)
    unit: Optional[str] = Field(default=None, max_length=20)
    quality: Optional[WoodQuality] = None
    harvest_date: Optional[datetime] = None


class WoodLotUpdate(BaseModel):
    """Request body for updating a wood lot. Only provided fields change."""

    species_id: Optional[UUID] = None
    origin: Optional[str] = Field(default=None, max_length=255)
    quantity: Optional[float] = Field(default=None, allow_inf_nan=False)
    unit: Optional[str] = Field(default=None, max_length=20)
    quality: Optional[WoodQuality] = None
    harvest_date: Optional[datetime] = None

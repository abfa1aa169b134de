"""Data access: the generic repository and the per-domain repositories."""

from timberledger.repositories.base import Condition, Repository, Where
from timberledger.repositories.role_repository import RoleRepository
from timberledger.repositories.transaction_repository import TransactionRepository
from timberledger.repositories.user_repository import UserRepository
from timberledger.repositories.wood_lot_repository import WoodLotRepository
from timberledger.repositories.wood_species_repository import WoodSpeciesRepository

__all__ = [
    "Condition",
    "Repository",
    "RoleRepository",
    "TransactionRepository",
    "UserRepository",
    "Where",
    "WoodLotRepository",
    "WoodSpeciesRepository",
]

"""Models package exports."""

from timberledger.models.filters import TransactionFilter, WoodLotFilter
from timberledger.models.response import ApiResponse
from timberledger.models.transaction import (
    TERMINAL_STATUSES,
    Transaction,
    TransactionDetails,
    TransactionStatus,
)
from timberledger.models.user import (
    Address,
    Permission,
    Role,
    RoleDetails,
    User,
    UserAccount,
    UserDetails,
    UserSummary,
)
from timberledger.models.wood import (
    ConservationStatus,
    WoodLot,
    WoodLotDetails,
    WoodQuality,
    WoodSpecies,
)

__all__ = [
    "Address",
    "ApiResponse",
    "ConservationStatus",
    "Permission",
    "Role",
    "RoleDetails",
    "TERMINAL_STATUSES",
    "Transaction",
    "TransactionDetails",
    "TransactionFilter",
    "TransactionStatus",
    "User",
    "UserAccount",
    "UserDetails",
    "UserSummary",
    "WoodLot",
    "WoodLotDetails",
    "WoodLotFilter",
    "WoodQuality",
    "WoodSpecies",
]

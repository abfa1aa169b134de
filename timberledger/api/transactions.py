"""Transaction endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from timberledger.api.dependencies import get_current_user_id
from timberledger.api.responses import respond
from timberledger.exceptions import NotFoundError
from timberledger.models.filters import TransactionFilter
from timberledger.models.transaction import (
    TransactionCreate,
    TransactionStatusUpdate,
    TransactionUpdate,
)
from timberledger.repositories.transaction_repository import TransactionRepository

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


@router.get("/")
async def list_transactions():
    """All transactions with lot, buyer, seller and creator."""
    transactions = await TransactionRepository().find_all_with_details()
    return respond("Transactions retrieved successfully", data=transactions)


@router.get("/filter")
async def filter_transactions(options: Annotated[TransactionFilter, Query()]):
    """Transactions matching the query-string filters. Range bounds are inclusive."""
    transactions = await TransactionRepository().filter_transactions(options)
    return respond("Transactions filtered successfully", data=transactions)


@router.get("/buyer/{buyer_id}")
async def list_by_buyer(buyer_id: UUID):
    transactions = await TransactionRepository().find_by_buyer(buyer_id)
    return respond("Transactions retrieved successfully", data=transactions)


@router.get("/seller/{seller_id}")
async def list_by_seller(seller_id: UUID):
    transactions = await TransactionRepository().find_by_seller(seller_id)
    return respond("Transactions retrieved successfully", data=transactions)


@router.get("/status/{transaction_status}")
async def list_by_status(transaction_status: str):
    """Transactions in a status; unknown statuses are a 400."""
    transactions = await TransactionRepository().find_by_status(transaction_status)
    return respond("Transactions retrieved successfully", data=transactions)


@router.get("/{transaction_id}")
async def get_transaction(transaction_id: UUID):
    transaction = await TransactionRepository().get_transaction_details(transaction_id)
    if transaction is None:
        raise NotFoundError(f"Transaction with ID {transaction_id} not found")
    return respond("Transaction retrieved successfully", data=transaction)


@router.post("/")
async def create_transaction(
    request: TransactionCreate,
    user_id: UUID = Depends(get_current_user_id),
):
    """Record a transaction on behalf of the authenticated user."""
    repository = TransactionRepository()
    transaction = await repository.create_transaction(request, created_by_id=user_id)
    details = await repository.get_transaction_details(transaction.id)
    return respond(
        "Transaction created successfully",
        data=details or transaction,
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{transaction_id}")
async def update_transaction(
    transaction_id: UUID,
    request: TransactionUpdate,
    user_id: UUID = Depends(get_current_user_id),
):
    """Edit a transaction. Completed and Cancelled transactions are refused."""
    repository = TransactionRepository()
    transaction = await repository.update_transaction(transaction_id, request)
    details = await repository.get_transaction_details(transaction.id)
    return respond("Transaction updated successfully", data=details or transaction)


@router.patch("/{transaction_id}/status")
async def update_transaction_status(
    transaction_id: UUID,
    request: TransactionStatusUpdate,
    user_id: UUID = Depends(get_current_user_id),
):
    """Change a transaction's status. Completed and Cancelled transactions are refused."""
    repository = TransactionRepository()
    transaction = await repository.update_status(transaction_id, request.status)
    details = await repository.get_transaction_details(transaction.id)
    return respond("Transaction status updated successfully", data=details or transaction)

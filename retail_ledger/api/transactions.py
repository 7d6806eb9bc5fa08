"""
Transfer and journal endpoints
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends

from .dependencies import get_banking_service, run_movement
from .schemas import MovementResponse, TransactionResponse, TransferRequest
from ..banking import BankingService
from ..errors import InvalidInputError
from ..journal import TransactionType


transfers_router = APIRouter()
router = APIRouter()


@transfers_router.post("", response_model=MovementResponse)
def transfer(
    request: TransferRequest,
    service: BankingService = Depends(get_banking_service)
):
    """Transfer funds between two accounts"""
    return run_movement(
        service,
        lambda: service.transfer(
            request.from_account,
            request.to_account,
            request.amount,
            request.description or "Fund transfer",
        ),
        request.from_account,
        request.to_account,
    )


@router.get("")
def list_transactions(
    type: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    service: BankingService = Depends(get_banking_service)
):
    """Journal history, optionally filtered by type or inclusive date range"""
    if type is not None:
        try:
            transaction_type = TransactionType(type.upper())
        except ValueError:
            raise InvalidInputError(f"Unknown transaction type: {type}", "type") from None
        transactions = service.list_transactions_by_type(transaction_type)
    elif start is not None or end is not None:
        if start is None or end is None:
            raise InvalidInputError("Both start and end are required for a date range", "start")
        transactions = service.list_transactions_by_date_range(start, end)
    else:
        transactions = service.get_transaction_history()

    return {"transactions": [TransactionResponse.from_transaction(t) for t in transactions]}


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, service: BankingService = Depends(get_banking_service)):
    return TransactionResponse.from_transaction(service.get_transaction(transaction_id))


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
def cancel_transaction(transaction_id: str, service: BankingService = Depends(get_banking_service)):
    """Mark a journal entry as cancelled"""
    return TransactionResponse.from_transaction(service.cancel_transaction(transaction_id))

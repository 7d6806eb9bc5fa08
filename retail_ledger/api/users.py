"""
User endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_banking_service
from .schemas import AccountResponse, CreateUserRequest, TransactionResponse, UserResponse
from ..banking import BankingService


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
def create_user(
    request: CreateUserRequest,
    service: BankingService = Depends(get_banking_service)
):
    """Register a new user"""
    user = service.create_user(
        request.first_name,
        request.last_name,
        request.email,
        phone=request.phone,
        address=request.address,
        pan_card_number=request.pan_card_number,
        aadhar_card_number=request.aadhar_card_number,
    )
    return UserResponse.from_user(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, service: BankingService = Depends(get_banking_service)):
    return UserResponse.from_user(service.get_user(user_id))


@router.get("/{user_id}/accounts")
def get_user_accounts(user_id: int, service: BankingService = Depends(get_banking_service)):
    """Accounts linked to a user"""
    accounts = service.get_user_accounts(user_id)
    return {"accounts": [AccountResponse.from_account(a, service.config.currency_code) for a in accounts]}


@router.get("/{user_id}/transactions")
def get_user_transactions(user_id: int, service: BankingService = Depends(get_banking_service)):
    transactions = service.get_user_transactions(user_id)
    return {"transactions": [TransactionResponse.from_transaction(t) for t in transactions]}

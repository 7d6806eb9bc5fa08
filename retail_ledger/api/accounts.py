"""
Account endpoints: lifecycle, cash movements and per-account journal views
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_banking_service, run_movement
from .schemas import (
    AccountResponse, AmountRequest, BalanceResponse, CreateAccountRequest,
    MovementResponse, SummaryResponse, TransactionResponse,
)
from ..banking import BankingService


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=AccountResponse)
def create_account(
    request: CreateAccountRequest,
    service: BankingService = Depends(get_banking_service)
):
    """Open an account for an existing user"""
    account = service.create_account(
        request.account_number,
        request.holder_name,
        request.account_type,
        request.user_id,
    )
    return AccountResponse.from_account(account, service.config.currency_code)


@router.get("/{account_number}", response_model=AccountResponse)
def get_account(account_number: str, service: BankingService = Depends(get_banking_service)):
    account = service.get_account(account_number)
    return AccountResponse.from_account(account, service.config.currency_code)


@router.get("/{account_number}/balance", response_model=BalanceResponse)
def get_balance(account_number: str, service: BankingService = Depends(get_banking_service)):
    balance = service.get_balance(account_number)
    return BalanceResponse(
        account_number=account_number,
        balance=str(balance),
        currency=service.config.currency_code,
    )


@router.post("/{account_number}/deposit", response_model=MovementResponse)
def deposit(
    account_number: str,
    request: AmountRequest,
    service: BankingService = Depends(get_banking_service)
):
    """Make a deposit"""
    return run_movement(
        service,
        lambda: service.deposit(
            account_number, request.amount, request.description or "Cash deposit"
        ),
        account_number,
    )


@router.post("/{account_number}/withdraw", response_model=MovementResponse)
def withdraw(
    account_number: str,
    request: AmountRequest,
    service: BankingService = Depends(get_banking_service)
):
    """Make a withdrawal"""
    return run_movement(
        service,
        lambda: service.withdraw(
            account_number, request.amount, request.description or "Cash withdrawal"
        ),
        account_number,
    )


@router.post("/{account_number}/close", response_model=AccountResponse)
def close_account(account_number: str, service: BankingService = Depends(get_banking_service)):
    account = service.close_account(account_number)
    return AccountResponse.from_account(account, service.config.currency_code)


@router.get("/{account_number}/transactions")
def get_account_transactions(
    account_number: str,
    service: BankingService = Depends(get_banking_service)
):
    """Get transaction history for account"""
    transactions = service.list_account_transactions(account_number)
    return {"transactions": [TransactionResponse.from_transaction(t) for t in transactions]}


@router.get("/{account_number}/summary", response_model=SummaryResponse)
def get_summary(account_number: str, service: BankingService = Depends(get_banking_service)):
    service.get_account(account_number)
    return SummaryResponse.from_summary(service.get_transaction_summary(account_number))

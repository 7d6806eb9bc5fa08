"""
Pydantic schemas for API requests and responses
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from ..accounts import Account
from ..directory import User
from ..journal import Transaction, TransactionSummary


# User schemas
class CreateUserRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    pan_card_number: Optional[str] = None
    aadhar_card_number: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    accounts: List[str]

    @classmethod
    def from_user(cls, user: User) -> 'UserResponse':
        return cls(
            id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            address=user.address,
            accounts=user.accounts,
        )


# Account schemas
class CreateAccountRequest(BaseModel):
    account_number: str
    holder_name: str
    account_type: str = Field(..., description="Account category, e.g. Savings or Current")
    user_id: int


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


class TransferRequest(BaseModel):
    from_account: str
    to_account: str
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


class AccountResponse(BaseModel):
    account_number: str
    holder_name: str
    account_type: str
    balance: str
    currency: str
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: Account, currency: str = "USD") -> 'AccountResponse':
        return cls(
            account_number=account.account_number,
            holder_name=account.holder_name,
            account_type=account.account_type,
            balance=str(account.balance),
            currency=currency,
            status=account.status.value,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class BalanceResponse(BaseModel):
    account_number: str
    balance: str
    currency: str


# Transaction schemas
class TransactionResponse(BaseModel):
    id: str
    transaction_type: str
    status: str
    from_account: Optional[str] = None
    to_account: Optional[str] = None
    amount: str
    fee: str
    balance_after: Optional[str] = None
    description: str
    reference_number: str
    timestamp: datetime

    @classmethod
    def from_transaction(cls, txn: Transaction) -> 'TransactionResponse':
        return cls(
            id=txn.id,
            transaction_type=txn.transaction_type.value,
            status=txn.status.value,
            from_account=txn.from_account,
            to_account=txn.to_account,
            amount=str(txn.amount),
            fee=str(txn.fee),
            balance_after=str(txn.balance_after) if txn.balance_after is not None else None,
            description=txn.description,
            reference_number=txn.reference_number,
            timestamp=txn.timestamp,
        )


class MovementResponse(BaseModel):
    """Outcome of a deposit, withdrawal or transfer"""
    balances: dict
    transaction: Optional[TransactionResponse] = None
    journal_recorded: bool


class SummaryResponse(BaseModel):
    account_number: str
    total_deposits: str
    total_withdrawals: str
    total_transfers_out: str
    total_transfers_in: str
    total_fees: str
    total_interest: str
    transaction_count: int
    last_transaction: Optional[datetime] = None
    net_amount: str

    @classmethod
    def from_summary(cls, summary: TransactionSummary) -> 'SummaryResponse':
        return cls(
            account_number=summary.account_number,
            total_deposits=str(summary.total_deposits),
            total_withdrawals=str(summary.total_withdrawals),
            total_transfers_out=str(summary.total_transfers_out),
            total_transfers_in=str(summary.total_transfers_in),
            total_fees=str(summary.total_fees),
            total_interest=str(summary.total_interest),
            transaction_count=summary.transaction_count,
            last_transaction=summary.last_transaction,
            net_amount=str(summary.net_amount),
        )

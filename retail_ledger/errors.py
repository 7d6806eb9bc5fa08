"""
Ledger Exceptions

Every failure the ledger, journal, directory or orchestrator can report.
Each exception carries a machine-readable ``code`` class attribute and keeps
its context as attributes so callers never need to parse messages.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for all retail ledger errors"""

    code: str = "LEDGER_ERROR"


# Lookup errors

class NotFoundError(LedgerError):
    """An account, transaction or user is absent"""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Account not found: {account_number}")


class TransactionNotFoundError(NotFoundError):
    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


class UserNotFoundError(NotFoundError):
    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: Any):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class NoTransactionsError(NotFoundError):
    """A journal query matched no entries"""

    code: str = "NO_TRANSACTIONS"

    def __init__(self, criteria: str):
        self.criteria = criteria
        super().__init__(f"No transactions found for {criteria}")


# Input errors

class AlreadyExistsError(LedgerError):
    """Duplicate account number or user email"""

    code: str = "ALREADY_EXISTS"

    def __init__(self, entity_type: str, key: str):
        self.entity_type = entity_type
        self.key = key
        super().__init__(f"{entity_type} already exists: {key}")


class InvalidInputError(LedgerError):
    """A required field is missing or malformed"""

    code: str = "INVALID_INPUT"

    def __init__(self, message: str, field_name: Optional[str] = None):
        self.field_name = field_name
        super().__init__(message)


class InvalidAmountError(LedgerError):
    """Amount is non-positive or not a valid decimal"""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Any, reason: str = "amount must be positive"):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


# Account state errors

class InsufficientFundsError(LedgerError):
    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, account_number: str, balance: Any, requested: Any):
        self.account_number = account_number
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"Insufficient funds in {account_number}: balance {balance}, requested {requested}"
        )


class InactiveAccountError(LedgerError):
    """Operation attempted on an account that is not Active"""

    code: str = "INACTIVE_ACCOUNT"

    def __init__(self, account_number: str, status: str):
        self.account_number = account_number
        self.status = status
        super().__init__(f"Account {account_number} has status: {status}")


class NonZeroBalanceError(LedgerError):
    code: str = "NON_ZERO_BALANCE"

    def __init__(self, account_number: str, balance: Any):
        self.account_number = account_number
        self.balance = balance
        super().__init__(
            f"Account {account_number} balance must be zero to close (balance {balance})"
        )


class AlreadyLinkedError(LedgerError):
    code: str = "ALREADY_LINKED"

    def __init__(self, user_id: Any, account_number: str):
        self.user_id = user_id
        self.account_number = account_number
        super().__init__(f"Account {account_number} already linked to user {user_id}")


# Fatal

class CompensationFailedError(LedgerError):
    """
    A transfer's compensating re-deposit could not be applied.

    Funds withdrawn from the source are unaccounted for; this must reach an
    operator and is never swallowed.
    """

    code: str = "COMPENSATION_FAILED"

    def __init__(self, account_number: str, amount: Any, attempts: int):
        self.account_number = account_number
        self.amount = amount
        self.attempts = attempts
        super().__init__(
            f"Failed to restore {amount} to {account_number} after {attempts} attempts"
        )

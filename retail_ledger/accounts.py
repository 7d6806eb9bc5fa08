"""
Account Ledger Module

Owns account records and the balance invariant. Deposits and withdrawals run
their check-then-mutate sequence under a per-account lock, so concurrent
callers can neither lose updates nor drive a balance below zero.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, Iterator, List
from contextlib import contextmanager, ExitStack
from enum import Enum
import threading

from .currency import AmountLike, ZERO, to_positive_amount
from .storage import StorageInterface, StorageRecord
from .errors import (
    AccountNotFoundError, AlreadyExistsError, InactiveAccountError,
    InsufficientFundsError, InvalidInputError, NonZeroBalanceError,
)
from .logging_config import get_logger, log_action


class AccountStatus(Enum):
    """Account lifecycle states; Active -> Closed is the only transition"""
    ACTIVE = "Active"
    CLOSED = "Closed"


@dataclass
class Account(StorageRecord):
    """
    Bank account. ``id`` and ``account_number`` hold the same key.
    """
    account_number: str
    holder_name: str
    account_type: str
    balance: Decimal = ZERO
    status: AccountStatus = AccountStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


class AccountLedger:
    """
    Manages account lifecycle and balances.

    This is the only writer of account records. Every mutator is
    idempotent-unsafe: calling deposit twice applies it twice.
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.accounts_table = "accounts"
        self.logger = get_logger("retail_ledger.accounts")

        self._registry_lock = threading.RLock()
        self._account_locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, account_number: str) -> threading.RLock:
        """
        Per-account lock. Locks exist only for stored accounts; records
        already in a shared store get theirs on first use.
        """
        with self._registry_lock:
            lock = self._account_locks.get(account_number)
            if lock is None:
                if not self.storage.exists(self.accounts_table, account_number):
                    raise AccountNotFoundError(account_number)
                lock = threading.RLock()
                self._account_locks[account_number] = lock
            return lock

    @contextmanager
    def lock_accounts(self, *account_numbers: str) -> Iterator[None]:
        """
        Hold the locks of several accounts at once.

        Locks are taken in ascending account-number order so two callers
        locking the same pair can never deadlock. Locks are re-entrant, so
        ledger operations may be called while they are held.

        Raises AccountNotFoundError if an account does not exist; locks
        already taken are released.
        """
        with ExitStack() as stack:
            for account_number in sorted(set(account_numbers)):
                stack.enter_context(self._lock_for(account_number))
            yield

    def create_account(self, account_number: str, holder_name: str, account_type: str) -> Account:
        """
        Create a new account with zero balance and Active status

        Raises:
            InvalidInputError: If any field is empty
            AlreadyExistsError: If the account number is taken
        """
        for field_name, value in (("account_number", account_number),
                                  ("holder_name", holder_name),
                                  ("account_type", account_type)):
            if not value or not str(value).strip():
                raise InvalidInputError(f"{field_name} is required", field_name)

        with self._registry_lock:
            if self.storage.exists(self.accounts_table, account_number):
                raise AlreadyExistsError("Account", account_number)

            now = datetime.now(timezone.utc)
            account = Account(
                id=account_number,
                created_at=now,
                updated_at=now,
                account_number=account_number,
                holder_name=holder_name,
                account_type=account_type,
                balance=ZERO,
                status=AccountStatus.ACTIVE,
            )
            self._save_account(account)
            self._account_locks[account_number] = threading.RLock()

        log_action(
            self.logger, "info", "Account created",
            action="create_account", resource=f"account:{account_number}",
            extra={"holder_name": holder_name, "account_type": account_type}
        )
        return account

    def deposit(self, account_number: str, amount: AmountLike) -> Account:
        """
        Credit an account

        Raises:
            InvalidAmountError: If amount is not positive
            AccountNotFoundError: If the account does not exist
            InactiveAccountError: If the account is closed
        """
        value = to_positive_amount(amount)

        with self.lock_accounts(account_number):
            account = self._require_account(account_number)
            if not account.is_active:
                raise InactiveAccountError(account_number, account.status.value)

            account.balance = account.balance + value
            account.updated_at = datetime.now(timezone.utc)
            self._save_account(account)

        log_action(
            self.logger, "info", "Deposit applied",
            action="deposit", resource=f"account:{account_number}",
            extra={"amount": str(value), "balance": str(account.balance)}
        )
        return account

    def withdraw(self, account_number: str, amount: AmountLike) -> Account:
        """
        Debit an account

        Raises:
            InvalidAmountError: If amount is not positive
            AccountNotFoundError: If the account does not exist
            InactiveAccountError: If the account is closed
            InsufficientFundsError: If the balance is lower than amount
        """
        value = to_positive_amount(amount)

        with self.lock_accounts(account_number):
            account = self._require_account(account_number)
            if not account.is_active:
                raise InactiveAccountError(account_number, account.status.value)
            if account.balance < value:
                raise InsufficientFundsError(account_number, account.balance, value)

            account.balance = account.balance - value
            account.updated_at = datetime.now(timezone.utc)
            self._save_account(account)

        log_action(
            self.logger, "info", "Withdrawal applied",
            action="withdraw", resource=f"account:{account_number}",
            extra={"amount": str(value), "balance": str(account.balance)}
        )
        return account

    def get_balance(self, account_number: str) -> Decimal:
        return self._require_account(account_number).balance

    def get_account(self, account_number: str) -> Account:
        """Get account details; raises AccountNotFoundError if absent"""
        return self._require_account(account_number)

    def list_accounts(self) -> List[Account]:
        """All accounts, oldest first"""
        accounts = [self._account_from_dict(data)
                    for data in self.storage.load_all(self.accounts_table)]
        return sorted(accounts, key=lambda a: (a.created_at, a.account_number))

    def close_account(self, account_number: str) -> Account:
        """
        Close an account. Closure is terminal; the record is kept.

        Raises:
            AccountNotFoundError: If the account does not exist
            NonZeroBalanceError: If the balance is not exactly zero
            InactiveAccountError: If the account is already closed
        """
        with self.lock_accounts(account_number):
            account = self._require_account(account_number)
            if account.balance != ZERO:
                raise NonZeroBalanceError(account_number, account.balance)
            if not account.is_active:
                raise InactiveAccountError(account_number, account.status.value)

            account.status = AccountStatus.CLOSED
            account.updated_at = datetime.now(timezone.utc)
            self._save_account(account)

        log_action(
            self.logger, "info", "Account closed",
            action="close_account", resource=f"account:{account_number}"
        )
        return account

    def _require_account(self, account_number: str) -> Account:
        account_dict = self.storage.load(self.accounts_table, account_number)
        if account_dict is None:
            raise AccountNotFoundError(account_number)
        return self._account_from_dict(account_dict)

    def _save_account(self, account: Account) -> None:
        self.storage.save(self.accounts_table, account.account_number, account.to_dict())

    def _account_from_dict(self, data: Dict) -> Account:
        """Convert dictionary to Account"""
        return Account(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            account_number=data['account_number'],
            holder_name=data['holder_name'],
            account_type=data['account_type'],
            balance=Decimal(data['balance']),
            status=AccountStatus(data['status']),
        )

"""
Banking Service Module

Composes the account ledger, the transaction journal and the user directory
into the operations a front-end calls. The ledger is authoritative: a
deposit or withdrawal that reached the ledger stands even when the journal
write after it fails. Transfers move money with a withdraw/deposit pair and
restore the source with a compensating deposit when the second leg fails.
"""

from decimal import Decimal
from datetime import datetime
from typing import List, Optional
import time

from .accounts import Account, AccountLedger
from .config import LedgerConfig, get_config
from .currency import AmountLike, to_positive_amount
from .directory import DirectoryInterface, User, UserDirectory
from .errors import (
    CompensationFailedError, InvalidInputError, LedgerError, NoTransactionsError,
    UserNotFoundError,
)
from .journal import (
    Transaction, TransactionJournal, TransactionStatus, TransactionSummary,
    TransactionType,
)
from .logging_config import get_logger, log_action
from .storage import InMemoryStorage, StorageInterface


class BankingService:
    """Ledger orchestrator with all components initialized"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        directory: Optional[DirectoryInterface] = None,
        config: Optional[LedgerConfig] = None
    ):
        self.storage = storage or InMemoryStorage()
        self.config = config or get_config()
        self.ledger = AccountLedger(self.storage)
        self.journal = TransactionJournal(self.storage, self.ledger)
        self.directory = directory or UserDirectory(self.storage)
        self.logger = get_logger("retail_ledger.banking")

    # Users

    def create_user(self, first_name: str, last_name: str, email: str, **details) -> User:
        return self.directory.create_user(first_name, last_name, email, **details)

    def get_user(self, user_id: int) -> User:
        return self.directory.get_user(user_id)

    def get_user_by_email(self, email: str) -> User:
        return self.directory.get_user_by_email(email)

    def list_users(self) -> List[User]:
        return self.directory.list_users()

    # Accounts

    def create_account(
        self,
        account_number: str,
        holder_name: str,
        account_type: str,
        user_id: int
    ) -> Account:
        """
        Open an account for an existing user and link it to them

        Raises:
            UserNotFoundError: If the user does not exist
            InvalidInputError, AlreadyExistsError: From the ledger
            AlreadyLinkedError: From the directory
        """
        if not self.directory.user_exists(user_id):
            raise UserNotFoundError(user_id)

        account = self.ledger.create_account(account_number, holder_name, account_type)
        self.directory.link_account(user_id, account_number)

        log_action(
            self.logger, "info", "Account opened for user",
            action="create_account", resource=f"account:{account_number}",
            extra={"user_id": user_id}
        )
        return account

    def get_account(self, account_number: str) -> Account:
        return self.ledger.get_account(account_number)

    def get_balance(self, account_number: str) -> Decimal:
        return self.ledger.get_balance(account_number)

    def close_account(self, account_number: str) -> Account:
        return self.ledger.close_account(account_number)

    def list_all_accounts(self) -> List[Account]:
        """Accounts linked to any user, in user order"""
        accounts = []
        for user in self.directory.list_users():
            accounts.extend(self._linked_accounts(user))
        return accounts

    def get_user_accounts(self, user_id: int) -> List[Account]:
        return self._linked_accounts(self.directory.get_user(user_id))

    # Money movement

    def deposit(
        self,
        account_number: str,
        amount: AmountLike,
        description: str = "Cash deposit"
    ) -> Optional[Transaction]:
        """
        Credit an account and journal the deposit.

        Returns the journal entry, or None when the journal write failed
        (the deposit itself still stands).
        """
        value = to_positive_amount(amount)
        with self.ledger.lock_accounts(account_number):
            self.ledger.deposit(account_number, value)
            return self._record_best_effort(
                TransactionType.DEPOSIT, None, account_number, value, description
            )

    def withdraw(
        self,
        account_number: str,
        amount: AmountLike,
        description: str = "Cash withdrawal"
    ) -> Optional[Transaction]:
        """Debit an account and journal the withdrawal; see deposit()"""
        value = to_positive_amount(amount)
        with self.ledger.lock_accounts(account_number):
            self.ledger.withdraw(account_number, value)
            return self._record_best_effort(
                TransactionType.WITHDRAWAL, account_number, None, value, description
            )

    def transfer(
        self,
        from_account: str,
        to_account: str,
        amount: AmountLike,
        description: str = "Fund transfer"
    ) -> Optional[Transaction]:
        """
        Move funds between two accounts.

        Both accounts stay locked from the withdrawal until the journal entry
        is written. If the deposit leg fails, the withdrawn amount is put
        back on the source and the deposit error is re-raised; no TRANSFER
        entry is written in that case.

        Raises:
            InvalidInputError: If source and destination are the same account
            LedgerError: Any withdraw or deposit failure, unchanged
            CompensationFailedError: If the source could not be restored
        """
        if from_account == to_account:
            raise InvalidInputError("Cannot transfer to the same account", "to_account")
        value = to_positive_amount(amount)

        with self.ledger.lock_accounts(from_account, to_account):
            self.ledger.withdraw(from_account, value)
            try:
                self.ledger.deposit(to_account, value)
            except Exception as deposit_error:
                log_action(
                    self.logger, "warning", "Transfer deposit leg failed, compensating",
                    action="transfer", resource=f"account:{from_account}",
                    extra={"to_account": to_account, "amount": str(value),
                           "error": str(deposit_error)}
                )
                self._compensate(from_account, value, deposit_error)
                raise

            transaction = self._record_best_effort(
                TransactionType.TRANSFER, from_account, to_account, value, description
            )

        log_action(
            self.logger, "info", "Transfer completed",
            action="transfer", resource=f"account:{from_account}",
            extra={"to_account": to_account, "amount": str(value)}
        )
        return transaction

    # Journal views

    def get_transaction(self, transaction_id: str) -> Transaction:
        return self.journal.get_transaction(transaction_id)

    def list_account_transactions(self, account_number: str) -> List[Transaction]:
        return self.journal.list_by_account(account_number)

    def list_transactions_by_type(self, transaction_type: TransactionType) -> List[Transaction]:
        return self.journal.list_by_type(transaction_type)

    def list_transactions_by_date_range(self, start: datetime, end: datetime) -> List[Transaction]:
        return self.journal.list_by_date_range(start, end)

    def get_transaction_history(self) -> List[Transaction]:
        return self.journal.list_all()

    def get_transaction_summary(self, account_number: str) -> TransactionSummary:
        return self.journal.summarize(account_number)

    def get_user_transactions(self, user_id: int) -> List[Transaction]:
        """Entries touching any of the user's accounts, each listed once"""
        user = self.directory.get_user(user_id)
        found = {}
        for account_number in user.accounts:
            try:
                for txn in self.journal.list_by_account(account_number):
                    found[txn.id] = txn
            except NoTransactionsError:
                continue
        if not found:
            raise NoTransactionsError(f"user {user_id}")
        return sorted(found.values(), key=lambda t: (t.timestamp, t.sequence))

    def cancel_transaction(self, transaction_id: str) -> Transaction:
        """Mark an entry CANCELLED; balances are not touched"""
        return self.journal.update_status(transaction_id, TransactionStatus.CANCELLED)

    # Internals

    def _linked_accounts(self, user: User) -> List[Account]:
        accounts = []
        for account_number in user.accounts:
            try:
                accounts.append(self.ledger.get_account(account_number))
            except LedgerError:
                continue
        return accounts

    def _record_best_effort(
        self,
        transaction_type: TransactionType,
        from_account: Optional[str],
        to_account: Optional[str],
        amount: Decimal,
        description: str
    ) -> Optional[Transaction]:
        try:
            return self.journal.record(
                transaction_type, from_account, to_account, amount, description
            )
        except Exception as e:
            log_action(
                self.logger, "warning",
                f"Failed to record {transaction_type.value.lower()} transaction: {e}",
                action="record_transaction",
                resource=f"account:{from_account or to_account}",
                extra={"amount": str(amount), "from_account": from_account,
                       "to_account": to_account},
                exc_info=e
            )
            return None

    def _compensate(self, account_number: str, amount: Decimal, cause: Exception) -> None:
        """
        Put withdrawn funds back, retrying with exponential backoff.

        Raises CompensationFailedError (chained to the original deposit
        failure) once every attempt has failed.
        """
        attempts = max(1, self.config.compensation_max_attempts)
        delay = self.config.compensation_backoff_seconds

        for attempt in range(1, attempts + 1):
            try:
                self.ledger.deposit(account_number, amount)
            except Exception as e:
                log_action(
                    self.logger, "error", "Compensating deposit failed",
                    action="compensate", resource=f"account:{account_number}",
                    extra={"attempt": attempt, "amount": str(amount), "error": str(e)}
                )
                if attempt < attempts and delay > 0:
                    time.sleep(delay * (2 ** (attempt - 1)))
                continue

            log_action(
                self.logger, "info", "Withdrawn funds restored",
                action="compensate", resource=f"account:{account_number}",
                extra={"attempt": attempt, "amount": str(amount)}
            )
            return

        log_action(
            self.logger, "critical", "Transfer compensation exhausted; funds in flight",
            action="compensate", resource=f"account:{account_number}",
            extra={"attempts": attempts, "amount": str(amount)}
        )
        raise CompensationFailedError(account_number, amount, attempts) from cause

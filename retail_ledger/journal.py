"""
Transaction Journal Module

Append-only record of every balance-affecting operation. The journal never
mutates the ledger: it reads balances only to annotate entries with the
balance the operation left behind. Entries are never deleted, and after
they are written only their status may change.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import threading
import uuid

from .accounts import AccountLedger
from .currency import AmountLike, ZERO, to_positive_amount, to_amount
from .storage import StorageInterface, StorageRecord
from .errors import (
    InvalidInputError, NoTransactionsError, NotFoundError, TransactionNotFoundError,
)
from .logging_config import get_logger, log_action


class TransactionType(Enum):
    """Types of journal entries"""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"
    INTEREST = "INTEREST"
    FEE = "FEE"


class TransactionStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


# Which side of the entry names an account, per type
_CREDIT_TYPES = {TransactionType.DEPOSIT, TransactionType.INTEREST}
_DEBIT_TYPES = {TransactionType.WITHDRAWAL, TransactionType.FEE}


@dataclass
class Transaction(StorageRecord):
    """
    Journal entry. ``created_at`` is the entry timestamp; ``updated_at``
    moves only when the status changes.
    """
    transaction_type: TransactionType
    status: TransactionStatus
    from_account: Optional[str]
    to_account: Optional[str]
    amount: Decimal
    description: str
    reference_number: str
    sequence: int
    balance_after: Optional[Decimal] = None
    fee: Decimal = ZERO

    @property
    def timestamp(self) -> datetime:
        return self.created_at

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED


@dataclass
class TransactionSummary:
    """Per-account rollup of completed journal entries"""
    account_number: str
    total_deposits: Decimal = ZERO
    total_withdrawals: Decimal = ZERO
    total_transfers_out: Decimal = ZERO
    total_transfers_in: Decimal = ZERO
    total_fees: Decimal = ZERO
    total_interest: Decimal = ZERO
    transaction_count: int = 0
    last_transaction: Optional[datetime] = None

    @property
    def net_amount(self) -> Decimal:
        return (self.total_deposits + self.total_transfers_in + self.total_interest
                - self.total_withdrawals - self.total_transfers_out - self.total_fees)


class TransactionJournal:
    """
    Append-only transaction store.

    Query policy: every filtered listing returns entries sorted by
    timestamp and raises NoTransactionsError when nothing matches.
    """

    def __init__(self, storage: StorageInterface, ledger: AccountLedger):
        self.storage = storage
        self.ledger = ledger
        self.table_name = "transactions"
        self.logger = get_logger("retail_ledger.journal")

        self._lock = threading.Lock()
        self._sequence = storage.count(self.table_name)

    def record(
        self,
        transaction_type: TransactionType,
        from_account: Optional[str],
        to_account: Optional[str],
        amount: AmountLike,
        description: str,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        fee: AmountLike = ZERO
    ) -> Transaction:
        """
        Append a journal entry for a mutation the caller already applied

        Args:
            transaction_type: Type of entry
            from_account: Source account (None for deposits and interest)
            to_account: Destination account (None for withdrawals and fees)
            amount: Positive amount moved
            description: Free text description
            status: Initial status, COMPLETED unless the caller says otherwise
            fee: Fee charged alongside the operation

        Returns:
            The stored Transaction

        Raises:
            InvalidAmountError: If amount is not positive
            InvalidInputError: If the accounts do not fit the transaction type
        """
        value = to_positive_amount(amount)
        fee_value = to_amount(fee)
        self._validate_accounts(transaction_type, from_account, to_account)

        balance_after = self._read_balance_after(transaction_type, from_account, to_account)

        with self._lock:
            self._sequence += 1
            now = datetime.now(timezone.utc)
            transaction = Transaction(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                transaction_type=transaction_type,
                status=status,
                from_account=from_account,
                to_account=to_account,
                amount=value,
                description=description,
                reference_number=f"REF{self._sequence:010d}",
                sequence=self._sequence,
                balance_after=balance_after,
                fee=fee_value,
            )
            self._save_transaction(transaction)

        log_action(
            self.logger, "info", f"Transaction recorded: {transaction_type.value}",
            action="record_transaction", resource=f"transaction:{transaction.id}",
            extra={
                "reference": transaction.reference_number,
                "amount": str(value),
                "from_account": from_account,
                "to_account": to_account,
                "status": status.value
            }
        )
        return transaction

    def get_transaction(self, transaction_id: str) -> Transaction:
        data = self.storage.load(self.table_name, transaction_id)
        if data is None:
            raise TransactionNotFoundError(transaction_id)
        return self._transaction_from_dict(data)

    def list_all(self) -> List[Transaction]:
        """Every entry in timestamp order; empty when nothing was recorded"""
        return self._sorted(self.storage.load_all(self.table_name))

    def list_by_account(self, account_number: str) -> List[Transaction]:
        """Entries where the account is the source or the destination"""
        records = {r['id']: r for r in self.storage.find(self.table_name, {"from_account": account_number})}
        for r in self.storage.find(self.table_name, {"to_account": account_number}):
            records[r['id']] = r
        if not records:
            raise NoTransactionsError(f"account {account_number}")
        return self._sorted(records.values())

    def list_by_type(self, transaction_type: TransactionType) -> List[Transaction]:
        records = self.storage.find(self.table_name, {"transaction_type": transaction_type.value})
        if not records:
            raise NoTransactionsError(f"type {transaction_type.value}")
        return self._sorted(records)

    def list_by_date_range(self, start: datetime, end: datetime) -> List[Transaction]:
        """Entries with start <= timestamp <= end; naive bounds are read as UTC"""
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        if start > end:
            raise InvalidInputError("start must not be after end", "start")
        matches = [t for t in self.list_all() if start <= t.timestamp <= end]
        if not matches:
            raise NoTransactionsError(f"range {start.isoformat()} to {end.isoformat()}")
        return matches

    def update_status(self, transaction_id: str, new_status: TransactionStatus) -> Transaction:
        """
        Change an entry's status. Any transition is allowed at this layer;
        all other fields stay as written.
        """
        with self._lock:
            transaction = self.get_transaction(transaction_id)
            old_status = transaction.status
            transaction.status = new_status
            transaction.updated_at = datetime.now(timezone.utc)
            self._save_transaction(transaction)

        log_action(
            self.logger, "info", "Transaction status updated",
            action="update_status", resource=f"transaction:{transaction_id}",
            extra={"old_status": old_status.value, "new_status": new_status.value}
        )
        return transaction

    def summarize(self, account_number: str) -> TransactionSummary:
        """
        Fold the account's COMPLETED entries into a summary.

        An account without entries gets an all-zero summary.
        """
        summary = TransactionSummary(account_number=account_number)
        try:
            transactions = self.list_by_account(account_number)
        except NoTransactionsError:
            return summary

        for txn in transactions:
            if not txn.is_completed:
                continue

            if txn.transaction_type == TransactionType.DEPOSIT:
                summary.total_deposits += txn.amount
            elif txn.transaction_type == TransactionType.WITHDRAWAL:
                summary.total_withdrawals += txn.amount
            elif txn.transaction_type == TransactionType.TRANSFER:
                if txn.from_account == account_number:
                    summary.total_transfers_out += txn.amount
                if txn.to_account == account_number:
                    summary.total_transfers_in += txn.amount
            elif txn.transaction_type == TransactionType.FEE:
                summary.total_fees += txn.amount
            elif txn.transaction_type == TransactionType.INTEREST:
                summary.total_interest += txn.amount
            summary.total_fees += txn.fee
            summary.transaction_count += 1

            if summary.last_transaction is None or txn.timestamp > summary.last_transaction:
                summary.last_transaction = txn.timestamp

        return summary

    def _validate_accounts(
        self,
        transaction_type: TransactionType,
        from_account: Optional[str],
        to_account: Optional[str]
    ) -> None:
        if transaction_type in _CREDIT_TYPES:
            valid = bool(to_account) and not from_account
        elif transaction_type in _DEBIT_TYPES:
            valid = bool(from_account) and not to_account
        else:
            valid = bool(from_account) and bool(to_account) and from_account != to_account
        if not valid:
            raise InvalidInputError(
                f"{transaction_type.value} entry has invalid accounts "
                f"(from={from_account!r}, to={to_account!r})"
            )

    def _read_balance_after(
        self,
        transaction_type: TransactionType,
        from_account: Optional[str],
        to_account: Optional[str]
    ) -> Optional[Decimal]:
        account_number = to_account if transaction_type in _CREDIT_TYPES else from_account
        try:
            return self.ledger.get_balance(account_number)
        except NotFoundError:
            return None

    def _sorted(self, records) -> List[Transaction]:
        transactions = [self._transaction_from_dict(r) for r in records]
        return sorted(transactions, key=lambda t: (t.timestamp, t.sequence))

    def _save_transaction(self, transaction: Transaction) -> None:
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())

    def _transaction_from_dict(self, data: Dict) -> Transaction:
        """Convert dictionary to Transaction"""
        balance_after = data.get('balance_after')
        return Transaction(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            transaction_type=TransactionType(data['transaction_type']),
            status=TransactionStatus(data['status']),
            from_account=data.get('from_account'),
            to_account=data.get('to_account'),
            amount=Decimal(data['amount']),
            description=data['description'],
            reference_number=data['reference_number'],
            sequence=data['sequence'],
            balance_after=Decimal(balance_after) if balance_after is not None else None,
            fee=Decimal(data.get('fee', '0.00')),
        )

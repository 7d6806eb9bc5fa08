"""
Test suite for the banking service (ledger orchestrator)

Exercises the compound operations end to end: account opening through the
directory, journaled deposits and withdrawals, transfers with compensation,
and summaries reconciled against balances.
"""

import logging
import random
import pytest
from decimal import Decimal
from unittest.mock import patch

from retail_ledger.banking import BankingService
from retail_ledger.config import LedgerConfig
from retail_ledger.accounts import AccountStatus
from retail_ledger.journal import TransactionStatus, TransactionType
from retail_ledger.errors import (
    AccountNotFoundError, AlreadyExistsError, AlreadyLinkedError,
    CompensationFailedError, InactiveAccountError, InsufficientFundsError,
    InvalidAmountError, InvalidInputError, NoTransactionsError,
    NonZeroBalanceError, UserNotFoundError,
)


def make_service(**config_overrides) -> BankingService:
    settings = {"compensation_max_attempts": 3, "compensation_backoff_seconds": 0}
    settings.update(config_overrides)
    return BankingService(config=LedgerConfig(**settings))


class TestAccountOpening:

    def setup_method(self):
        self.service = make_service()
        self.user = self.service.create_user("Raushan", "Kumar", "raushan.kumar@hk.com")

    def test_create_account_links_user(self):
        account = self.service.create_account("ACC001", "Raushan Kumar", "Savings", self.user.user_id)

        assert account.balance == Decimal('0')
        assert account.status == AccountStatus.ACTIVE
        assert self.service.get_user(self.user.user_id).accounts == ["ACC001"]
        assert [a.account_number for a in self.service.get_user_accounts(self.user.user_id)] == ["ACC001"]

    def test_unknown_user(self):
        with pytest.raises(UserNotFoundError):
            self.service.create_account("ACC001", "Nobody", "Savings", 999)
        # Nothing was created in the ledger
        with pytest.raises(AccountNotFoundError):
            self.service.get_account("ACC001")

    def test_ledger_errors_pass_through(self):
        self.service.create_account("ACC001", "Raushan Kumar", "Savings", self.user.user_id)
        with pytest.raises(AlreadyExistsError):
            self.service.create_account("ACC001", "Raushan Kumar", "Current", self.user.user_id)
        with pytest.raises(InvalidInputError):
            self.service.create_account("ACC002", "", "Savings", self.user.user_id)

    def test_link_errors_pass_through(self):
        self.service.directory.link_account(self.user.user_id, "ACC009")
        with pytest.raises(AlreadyLinkedError):
            self.service.create_account("ACC009", "Raushan Kumar", "Savings", self.user.user_id)

    def test_list_all_accounts_follows_users(self):
        other = self.service.create_user("Asha", "Rao", "asha@example.com")
        self.service.create_account("B1", "Asha Rao", "Current", other.user_id)
        self.service.create_account("A1", "Raushan Kumar", "Savings", self.user.user_id)
        self.service.create_account("A2", "Raushan Kumar", "Current", self.user.user_id)

        numbers = [a.account_number for a in self.service.list_all_accounts()]
        assert numbers == ["A1", "A2", "B1"]


class TestDepositWithdraw:

    def setup_method(self):
        self.service = make_service()
        user = self.service.create_user("Jane", "Doe", "jane@example.com")
        self.service.create_account("A1", "Jane Doe", "Savings", user.user_id)

    def test_deposit_records_entry(self):
        txn = self.service.deposit("A1", Decimal('1000'))

        assert self.service.get_balance("A1") == Decimal('1000')
        assert txn.transaction_type == TransactionType.DEPOSIT
        assert txn.to_account == "A1"
        assert txn.from_account is None
        assert txn.balance_after == Decimal('1000')
        assert txn.description == "Cash deposit"
        assert txn.status == TransactionStatus.COMPLETED

    def test_withdraw_records_entry(self):
        self.service.deposit("A1", Decimal('1000'))
        txn = self.service.withdraw("A1", Decimal('250'), description="ATM")

        assert self.service.get_balance("A1") == Decimal('750')
        assert txn.transaction_type == TransactionType.WITHDRAWAL
        assert txn.from_account == "A1"
        assert txn.balance_after == Decimal('750')
        assert txn.description == "ATM"

    def test_failed_withdraw_records_nothing(self):
        self.service.deposit("A1", Decimal('100'))
        with pytest.raises(InsufficientFundsError):
            self.service.withdraw("A1", Decimal('500'))

        assert self.service.get_balance("A1") == Decimal('100')
        assert len(self.service.list_account_transactions("A1")) == 1

    def test_invalid_amount_records_nothing(self):
        with pytest.raises(InvalidAmountError):
            self.service.deposit("A1", Decimal('0'))
        with pytest.raises(NoTransactionsError):
            self.service.list_account_transactions("A1")

    @pytest.mark.parametrize("raw", ["1e3", "12abc34", "1.000,50"])
    def test_malformed_amount_moves_nothing(self, raw):
        with pytest.raises(InvalidAmountError):
            self.service.deposit("A1", raw)
        assert self.service.get_balance("A1") == Decimal('0')
        with pytest.raises(NoTransactionsError):
            self.service.list_account_transactions("A1")

    def test_journal_failure_keeps_deposit(self, caplog):
        """The ledger is authoritative; a lost journal write is only a warning"""
        with patch.object(self.service.journal, "record", side_effect=RuntimeError("journal down")):
            with caplog.at_level(logging.WARNING, logger="retail_ledger.banking"):
                result = self.service.deposit("A1", Decimal('300'))

        assert result is None
        assert self.service.get_balance("A1") == Decimal('300')
        assert "Failed to record deposit transaction" in caplog.text
        with pytest.raises(NoTransactionsError):
            self.service.list_account_transactions("A1")

    def test_journal_failure_keeps_withdrawal(self):
        self.service.deposit("A1", Decimal('300'))
        with patch.object(self.service.journal, "record", side_effect=RuntimeError("journal down")):
            assert self.service.withdraw("A1", Decimal('100')) is None
        assert self.service.get_balance("A1") == Decimal('200')

    def test_close_account_rules(self):
        self.service.deposit("A1", Decimal('10'))
        with pytest.raises(NonZeroBalanceError):
            self.service.close_account("A1")

        self.service.withdraw("A1", Decimal('10'))
        closed = self.service.close_account("A1")
        assert closed.status == AccountStatus.CLOSED

        with pytest.raises(InactiveAccountError):
            self.service.deposit("A1", Decimal('1'))
        with pytest.raises(InactiveAccountError):
            self.service.withdraw("A1", Decimal('1'))


class TestTransfers:

    def setup_method(self):
        self.service = make_service()
        user = self.service.create_user("Jane", "Doe", "jane@example.com")
        self.service.create_account("A1", "Jane Doe", "Savings", user.user_id)
        self.service.create_account("A2", "Jane Doe", "Current", user.user_id)
        self.service.deposit("A1", Decimal('1000'))

    def _transfer_entries(self):
        try:
            return self.service.list_transactions_by_type(TransactionType.TRANSFER)
        except NoTransactionsError:
            return []

    def test_transfer(self):
        txn = self.service.transfer("A1", "A2", Decimal('400'))

        assert self.service.get_balance("A1") == Decimal('600')
        assert self.service.get_balance("A2") == Decimal('400')

        entries = self._transfer_entries()
        assert len(entries) == 1
        assert entries[0].id == txn.id
        assert txn.from_account == "A1"
        assert txn.to_account == "A2"
        assert txn.amount == Decimal('400')
        assert txn.balance_after == Decimal('600')

    def test_insufficient_funds_leaves_both_balances(self):
        with pytest.raises(InsufficientFundsError):
            self.service.transfer("A1", "A2", Decimal('1000.01'))

        assert self.service.get_balance("A1") == Decimal('1000')
        assert self.service.get_balance("A2") == Decimal('0')
        assert self._transfer_entries() == []

    def test_unknown_source(self):
        with pytest.raises(AccountNotFoundError):
            self.service.transfer("NOPE", "A2", Decimal('10'))
        assert self.service.get_balance("A2") == Decimal('0')

    def test_same_account_rejected(self):
        with pytest.raises(InvalidInputError, match="same account"):
            self.service.transfer("A1", "A1", Decimal('10'))
        assert self.service.get_balance("A1") == Decimal('1000')

    def test_closed_destination_is_compensated(self):
        self.service.close_account("A2")

        with pytest.raises(InactiveAccountError):
            self.service.transfer("A1", "A2", Decimal('400'))

        assert self.service.get_balance("A1") == Decimal('1000')
        assert self.service.get_balance("A2") == Decimal('0')
        assert self._transfer_entries() == []

    def test_unknown_destination_is_rejected_before_withdrawal(self):
        real_withdraw = self.service.ledger.withdraw
        with patch.object(self.service.ledger, "withdraw", wraps=real_withdraw) as withdraw:
            with pytest.raises(AccountNotFoundError) as exc_info:
                self.service.transfer("A1", "GHOST", Decimal('250'))

        assert exc_info.value.account_number == "GHOST"
        withdraw.assert_not_called()
        assert self.service.get_balance("A1") == Decimal('1000')
        assert self._transfer_entries() == []

    def test_unknown_accounts_leave_no_locks_behind(self):
        registered = set(self.service.ledger._account_locks)
        for i in range(200):
            with pytest.raises(AccountNotFoundError):
                self.service.deposit(f"missing-{i}", "1")
            with pytest.raises(AccountNotFoundError):
                self.service.transfer("A1", f"missing-{i}", "1")
        assert set(self.service.ledger._account_locks) == registered
        assert self.service.get_balance("A1") == Decimal('1000')

    def test_compensation_retries_until_success(self):
        real_deposit = self.service.ledger.deposit
        calls = []

        def flaky_deposit(account_number, amount):
            calls.append(account_number)
            # Destination leg fails, then the first compensation attempt fails
            if len(calls) <= 2:
                raise RuntimeError("ledger hiccup")
            return real_deposit(account_number, amount)

        with patch.object(self.service.ledger, "deposit", side_effect=flaky_deposit):
            with pytest.raises(RuntimeError, match="ledger hiccup"):
                self.service.transfer("A1", "A2", Decimal('400'))

        assert calls == ["A2", "A1", "A1"]
        assert self.service.get_balance("A1") == Decimal('1000')
        assert self._transfer_entries() == []

    def test_compensation_exhausted_is_fatal(self, caplog):
        with patch.object(self.service.ledger, "deposit", side_effect=RuntimeError("ledger down")):
            with caplog.at_level(logging.CRITICAL, logger="retail_ledger.banking"):
                with pytest.raises(CompensationFailedError) as exc_info:
                    self.service.transfer("A1", "A2", Decimal('400'))

        error = exc_info.value
        assert error.account_number == "A1"
        assert error.amount == Decimal('400')
        assert error.attempts == 3
        assert isinstance(error.__cause__, RuntimeError)
        assert "compensation exhausted" in caplog.text
        assert self._transfer_entries() == []

    def test_compensation_backoff_sleeps_between_attempts(self):
        self.service = make_service(compensation_max_attempts=3, compensation_backoff_seconds=0.5)
        user = self.service.create_user("Jane", "Doe", "jane@example.com")
        self.service.create_account("A1", "Jane Doe", "Savings", user.user_id)
        self.service.create_account("A2", "Jane Doe", "Current", user.user_id)
        self.service.ledger.deposit("A1", Decimal('50'))

        with patch.object(self.service.ledger, "deposit", side_effect=RuntimeError("down")), \
                patch("retail_ledger.banking.time.sleep") as sleep:
            with pytest.raises(CompensationFailedError):
                self.service.transfer("A1", "A2", Decimal('10'))

        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    def test_transfer_journal_failure_keeps_transfer(self):
        with patch.object(self.service.journal, "record", side_effect=RuntimeError("journal down")):
            assert self.service.transfer("A1", "A2", Decimal('100')) is None

        assert self.service.get_balance("A1") == Decimal('900')
        assert self.service.get_balance("A2") == Decimal('100')


class TestScenarios:

    def setup_method(self):
        self.service = make_service()
        self.user = self.service.create_user("Raushan", "Kumar", "raushan.kumar@hk.com")

    def test_deposit_deposit_withdraw(self):
        self.service.create_account("A1", "Raushan Kumar", "Savings", self.user.user_id)
        self.service.deposit("A1", Decimal('1000'))
        self.service.deposit("A1", Decimal('500'))
        self.service.withdraw("A1", Decimal('200'))

        assert self.service.get_balance("A1") == Decimal('1300')
        assert len(self.service.list_account_transactions("A1")) == 3

        summary = self.service.get_transaction_summary("A1")
        assert summary.total_deposits == Decimal('1500')
        assert summary.total_withdrawals == Decimal('200')
        assert summary.net_amount == Decimal('1300')
        assert summary.transaction_count == 3

    def test_transfer_between_two_accounts(self):
        self.service.create_account("A1", "Raushan Kumar", "Savings", self.user.user_id)
        self.service.create_account("A2", "Raushan Kumar", "Current", self.user.user_id)
        self.service.deposit("A1", Decimal('1000'))
        self.service.transfer("A1", "A2", Decimal('400'))

        assert self.service.get_balance("A1") == Decimal('600')
        assert self.service.get_balance("A2") == Decimal('400')

        transfers = self.service.list_transactions_by_type(TransactionType.TRANSFER)
        assert len(transfers) == 1
        assert transfers[0].from_account == "A1"
        assert transfers[0].to_account == "A2"
        assert transfers[0].amount == Decimal('400')

    def test_summary_reconciles_with_balances(self):
        """Summary net amount equals each account's balance change"""
        numbers = ["R1", "R2", "R3"]
        for number in numbers:
            self.service.create_account(number, "Raushan Kumar", "Savings", self.user.user_id)
            self.service.deposit(number, Decimal('100'))

        start = {n: self.service.get_balance(n) for n in numbers}
        start_net = {n: self.service.get_transaction_summary(n).net_amount for n in numbers}

        rng = random.Random(1234)
        for _ in range(200):
            op = rng.choice(["deposit", "withdraw", "transfer"])
            amount = Decimal(rng.randint(1, 5000)) / 100
            source, dest = rng.sample(numbers, 2)
            try:
                if op == "deposit":
                    self.service.deposit(source, amount)
                elif op == "withdraw":
                    self.service.withdraw(source, amount)
                else:
                    self.service.transfer(source, dest, amount)
            except InsufficientFundsError:
                pass
            for number in numbers:
                assert self.service.get_balance(number) >= Decimal('0')

        for number in numbers:
            summary = self.service.get_transaction_summary(number)
            delta = self.service.get_balance(number) - start[number]
            assert summary.net_amount - start_net[number] == delta

        total = sum(self.service.get_balance(n) for n in numbers)
        deposits = sum(self.service.get_transaction_summary(n).total_deposits for n in numbers)
        withdrawals = sum(self.service.get_transaction_summary(n).total_withdrawals for n in numbers)
        # Transfers neither create nor destroy money
        assert total == deposits - withdrawals


class TestJournalViews:

    def setup_method(self):
        self.service = make_service()
        self.user = self.service.create_user("Jane", "Doe", "jane@example.com")
        self.service.create_account("A1", "Jane Doe", "Savings", self.user.user_id)
        self.service.create_account("A2", "Jane Doe", "Current", self.user.user_id)

    def test_user_transactions_are_deduplicated(self):
        self.service.deposit("A1", Decimal('100'))
        self.service.transfer("A1", "A2", Decimal('40'))
        self.service.deposit("A2", Decimal('5'))

        transactions = self.service.get_user_transactions(self.user.user_id)
        assert len(transactions) == 3
        assert [t.transaction_type for t in transactions] == [
            TransactionType.DEPOSIT, TransactionType.TRANSFER, TransactionType.DEPOSIT
        ]

    def test_user_without_transactions(self):
        with pytest.raises(NoTransactionsError):
            self.service.get_user_transactions(self.user.user_id)
        with pytest.raises(UserNotFoundError):
            self.service.get_user_transactions(77)

    def test_history(self):
        assert self.service.get_transaction_history() == []
        self.service.deposit("A1", Decimal('100'))
        self.service.withdraw("A1", Decimal('30'))
        history = self.service.get_transaction_history()
        assert [t.transaction_type for t in history] == [
            TransactionType.DEPOSIT, TransactionType.WITHDRAWAL
        ]

    def test_cancel_transaction_changes_status_only(self):
        txn = self.service.deposit("A1", Decimal('100'))
        cancelled = self.service.cancel_transaction(txn.id)

        assert cancelled.status == TransactionStatus.CANCELLED
        assert self.service.get_transaction(txn.id).status == TransactionStatus.CANCELLED
        # Balance untouched, summary drops the cancelled entry
        assert self.service.get_balance("A1") == Decimal('100')
        assert self.service.get_transaction_summary("A1").total_deposits == Decimal('0')

"""
Retail Ledger

An in-memory retail banking ledger: accounts with guarded balances, an
append-only transaction journal, and an orchestrator that keeps the two
consistent across deposits, withdrawals and transfers.
"""

__version__ = "1.0.0"

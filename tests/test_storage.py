"""
Tests for the in-memory storage backend
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from enum import Enum

from retail_ledger.storage import InMemoryStorage, StorageRecord


class Colour(Enum):
    RED = "red"


@dataclass
class SampleRecord(StorageRecord):
    amount: Decimal
    colour: Colour


class TestInMemoryStorage:

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.record = {"id": "r1", "name": "Test Record", "amount": "100.50"}

    def test_basic_operations(self):
        self.storage.save("items", "r1", self.record)
        assert self.storage.load("items", "r1") == self.record
        assert self.storage.exists("items", "r1")
        assert not self.storage.exists("items", "missing")
        assert self.storage.load("items", "missing") is None

        self.storage.save("items", "r2", {"id": "r2", "name": "Other"})
        assert len(self.storage.load_all("items")) == 2
        assert self.storage.count("items") == 2

        results = self.storage.find("items", {"name": "Test Record"})
        assert [r["id"] for r in results] == ["r1"]
        assert self.storage.find("items", {"unknown_field": 1}) == []

        self.storage.clear_table("items")
        assert self.storage.count("items") == 0

    def test_records_are_copied(self):
        """Mutating a loaded record never changes what is stored"""
        self.storage.save("items", "r1", self.record)
        self.record["name"] = "changed before load"

        loaded = self.storage.load("items", "r1")
        assert loaded["name"] == "Test Record"

        loaded["name"] = "changed after load"
        assert self.storage.load("items", "r1")["name"] == "Test Record"

    def test_tables_are_isolated(self):
        self.storage.save("a", "1", {"id": "1"})
        assert self.storage.count("b") == 0
        assert self.storage.load("b", "1") is None

    def test_storage_record_to_dict(self):
        now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        record = SampleRecord(
            id="s1", created_at=now, updated_at=now,
            amount=Decimal('10.50'), colour=Colour.RED
        )
        data = record.to_dict()
        assert data["created_at"] == now.isoformat()
        assert data["amount"] == "10.50"
        assert data["colour"] == "red"

"""
Test suite for the user directory
"""

import pytest

from retail_ledger.storage import InMemoryStorage
from retail_ledger.directory import DirectoryInterface, UserDirectory
from retail_ledger.errors import (
    AlreadyExistsError, AlreadyLinkedError, InvalidInputError, UserNotFoundError,
)


class TestUserDirectory:

    def setup_method(self):
        self.directory = UserDirectory(InMemoryStorage())

    def _create(self, email="jane@example.com", **overrides):
        details = {"first_name": "Jane", "last_name": "Doe", "email": email}
        details.update(overrides)
        return self.directory.create_user(**details)

    def test_implements_interface(self):
        assert isinstance(self.directory, DirectoryInterface)

    def test_create_user_assigns_sequential_ids(self):
        first = self._create()
        second = self._create(email="john@example.com", first_name="John")
        assert first.user_id == 1
        assert second.user_id == 2
        assert first.accounts == []
        assert first.full_name == "Jane Doe"

    def test_optional_details_are_kept(self):
        user = self._create(phone="7645927364", address="Motihari, Bihar",
                            pan_card_number="DFFGD7657JKHG")
        loaded = self.directory.get_user(user.user_id)
        assert loaded.phone == "7645927364"
        assert loaded.address == "Motihari, Bihar"
        assert loaded.pan_card_number == "DFFGD7657JKHG"
        assert loaded.aadhar_card_number is None

    def test_email_must_be_unique(self):
        self._create()
        with pytest.raises(AlreadyExistsError, match="jane@example.com"):
            self._create(first_name="Janet")
        assert len(self.directory.list_users()) == 1

    @pytest.mark.parametrize("field_name", ["first_name", "last_name", "email"])
    def test_required_fields(self, field_name):
        with pytest.raises(InvalidInputError) as exc_info:
            self._create(**{field_name: ""})
        assert exc_info.value.field_name == field_name

    def test_lookup(self):
        user = self._create()
        assert self.directory.get_user_by_email("jane@example.com").user_id == user.user_id
        assert self.directory.user_exists(user.user_id)
        assert not self.directory.user_exists(99)

        with pytest.raises(UserNotFoundError):
            self.directory.get_user(99)
        with pytest.raises(UserNotFoundError):
            self.directory.get_user_by_email("nobody@example.com")

    def test_list_users_sorted_by_id(self):
        for i in range(3):
            self._create(email=f"user{i}@example.com")
        assert [u.user_id for u in self.directory.list_users()] == [1, 2, 3]

    def test_link_account(self):
        user = self._create()
        self.directory.link_account(user.user_id, "A1")
        self.directory.link_account(user.user_id, "A2")
        assert self.directory.get_user(user.user_id).accounts == ["A1", "A2"]

    def test_link_account_twice(self):
        user = self._create()
        self.directory.link_account(user.user_id, "A1")
        with pytest.raises(AlreadyLinkedError):
            self.directory.link_account(user.user_id, "A1")
        assert self.directory.get_user(user.user_id).accounts == ["A1"]

    def test_link_account_unknown_user(self):
        with pytest.raises(UserNotFoundError):
            self.directory.link_account(42, "A1")

"""
User Directory Module

Keyed directory of bank customers and the accounts linked to them. The
ledger only consults it to check that a user exists and to link a newly
created account; any directory honouring ``DirectoryInterface`` can be
plugged into the orchestrator.
"""

from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from abc import ABC, abstractmethod
import threading

from .storage import StorageInterface, StorageRecord
from .errors import (
    AlreadyExistsError, AlreadyLinkedError, InvalidInputError, UserNotFoundError,
)
from .logging_config import get_logger, log_action


@dataclass
class User(StorageRecord):
    """Bank customer; ``id`` is the string form of ``user_id``"""
    user_id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    pan_card_number: Optional[str] = None
    aadhar_card_number: Optional[str] = None
    accounts: List[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class DirectoryInterface(ABC):
    """What the orchestrator needs from a user directory"""

    @abstractmethod
    def user_exists(self, user_id: int) -> bool:
        pass

    @abstractmethod
    def link_account(self, user_id: int, account_number: str) -> None:
        """Link an account to a user; fails if the user is missing or already linked"""
        pass


class UserDirectory(DirectoryInterface):
    """In-memory user directory with unique emails"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "users"
        self.logger = get_logger("retail_ledger.directory")
        self._lock = threading.RLock()
        self._next_id = storage.count(self.table_name) + 1

    def create_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        pan_card_number: Optional[str] = None,
        aadhar_card_number: Optional[str] = None
    ) -> User:
        """
        Register a user

        Raises:
            InvalidInputError: If first name, last name or email is empty
            AlreadyExistsError: If the email is already registered
        """
        for field_name, value in (("first_name", first_name),
                                  ("last_name", last_name),
                                  ("email", email)):
            if not value or not value.strip():
                raise InvalidInputError(f"{field_name} is required", field_name)

        with self._lock:
            if self.storage.find(self.table_name, {"email": email}):
                raise AlreadyExistsError("User email", email)

            now = datetime.now(timezone.utc)
            user = User(
                id=str(self._next_id),
                created_at=now,
                updated_at=now,
                user_id=self._next_id,
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
                address=address,
                pan_card_number=pan_card_number,
                aadhar_card_number=aadhar_card_number,
            )
            self._save_user(user)
            self._next_id += 1

        log_action(
            self.logger, "info", "User created",
            action="create_user", resource=f"user:{user.user_id}"
        )
        return user

    def get_user(self, user_id: int) -> User:
        data = self.storage.load(self.table_name, str(user_id))
        if data is None:
            raise UserNotFoundError(user_id)
        return self._user_from_dict(data)

    def get_user_by_email(self, email: str) -> User:
        matches = self.storage.find(self.table_name, {"email": email})
        if not matches:
            raise UserNotFoundError(email)
        return self._user_from_dict(matches[0])

    def list_users(self) -> List[User]:
        users = [self._user_from_dict(d) for d in self.storage.load_all(self.table_name)]
        return sorted(users, key=lambda u: u.user_id)

    def user_exists(self, user_id: int) -> bool:
        return self.storage.exists(self.table_name, str(user_id))

    def link_account(self, user_id: int, account_number: str) -> None:
        with self._lock:
            user = self.get_user(user_id)
            if account_number in user.accounts:
                raise AlreadyLinkedError(user_id, account_number)
            user.accounts.append(account_number)
            user.updated_at = datetime.now(timezone.utc)
            self._save_user(user)

        log_action(
            self.logger, "info", "Account linked to user",
            action="link_account", resource=f"user:{user_id}",
            extra={"account_number": account_number}
        )

    def _save_user(self, user: User) -> None:
        self.storage.save(self.table_name, user.id, user.to_dict())

    def _user_from_dict(self, data: Dict) -> User:
        return User(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            user_id=data['user_id'],
            first_name=data['first_name'],
            last_name=data['last_name'],
            email=data['email'],
            phone=data.get('phone'),
            address=data.get('address'),
            pan_card_number=data.get('pan_card_number'),
            aadhar_card_number=data.get('aadhar_card_number'),
            accounts=list(data.get('accounts', [])),
        )

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from .models import UserRole, UserStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStorage:
    """Users, scan records and the transaction table.

    ``scan_records`` is keyed by token, which plays the role of the unique
    constraint on the token column. ``transactions`` is append-only and ids
    are handed out from a single counter. All writes happen under ``_lock``;
    ``atomic()`` groups several writes into one unit that is undone as a
    whole if the block raises.
    """

    def __init__(self, seed: bool = True, clock: Optional[Callable[[], datetime]] = None):
        self._lock = threading.RLock()
        self.clock = clock or utc_now
        self.users: dict[int, dict] = {}
        self.scan_records: dict[str, dict] = {}
        self.transactions: list[dict] = []
        self._next_transaction_id = 1
        self._next_user_id = 1
        self._unit_tokens: Optional[list[str]] = None
        if seed:
            self._seed_data()

    def _seed_data(self):
        self.add_user(name="System Admin", phone="+201012345678", role=UserRole.ADMIN)
        self.add_user(name="Ahmed Installer", phone="+201112345678", region="Cairo")
        self.add_user(name="Mona Installer", phone="+201212345678", region="Giza")

    def add_user(
        self,
        name: str,
        phone: str,
        region: Optional[str] = None,
        role: UserRole = UserRole.INSTALLER,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> dict:
        with self._lock:
            if any(u["phone"] == phone for u in self.users.values()):
                raise ValueError(f"Phone {phone} already registered")
            user = {
                "id": self._next_user_id,
                "name": name, "phone": phone, "region": region,
                "role": role, "status": status,
                "created_at": self.clock(),
            }
            self.users[user["id"]] = user
            self._next_user_id += 1
            return user

    def insert_scan_record_if_absent(self, token: str, user_id: int) -> tuple[dict, bool]:
        """Single check-and-insert step. Returns (record, inserted).

        When the token is already taken the existing record is returned
        with ``inserted=False``; it is never overwritten.
        """
        with self._lock:
            existing = self.scan_records.get(token)
            if existing is not None:
                return existing, False
            record = {"token": token, "user_id": user_id, "scanned_at": self.clock()}
            self.scan_records[token] = record
            if self._unit_tokens is not None:
                self._unit_tokens.append(token)
            return record, True

    def get_scan_record(self, token: str) -> Optional[dict]:
        with self._lock:
            return self.scan_records.get(token)

    def insert_transaction(self, row: dict) -> dict:
        with self._lock:
            stored = {**row, "id": self._next_transaction_id, "created_at": self.clock()}
            self.transactions.append(stored)
            self._next_transaction_id += 1
            return stored

    def transactions_for_user(self, user_id: int) -> list[dict]:
        with self._lock:
            return [t for t in self.transactions if t["user_id"] == user_id]

    def all_transactions(self) -> list[dict]:
        with self._lock:
            return list(self.transactions)

    def all_scan_records(self) -> list[dict]:
        with self._lock:
            return list(self.scan_records.values())

    @contextmanager
    def atomic(self) -> Iterator["InMemoryStorage"]:
        with self._lock:
            outer_tokens = self._unit_tokens
            self._unit_tokens = []
            transaction_count = len(self.transactions)
            next_id = self._next_transaction_id
            try:
                yield self
            except BaseException:
                for token in self._unit_tokens:
                    del self.scan_records[token]
                del self.transactions[transaction_count:]
                self._next_transaction_id = next_id
                self._unit_tokens = outer_tokens
                raise
            if outer_tokens is not None:
                outer_tokens.extend(self._unit_tokens)
            self._unit_tokens = outer_tokens

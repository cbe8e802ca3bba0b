import logging
from datetime import datetime
from typing import Iterator, Optional

from .models import (
    TransactionType,
    TransactionSource,
    UserRole,
    User,
    Transaction,
    UserBalance,
    AllocatePointsRequest,
    LedgerHistoryResponse,
    InstallationStats,
    ProgramSummary,
)
from .storage import InMemoryStorage

log = logging.getLogger("rewards.ledger")


class LedgerServiceError(Exception):
    pass


class InvalidAmountError(LedgerServiceError):
    pass


class UnknownUserError(LedgerServiceError):
    pass


class PermissionDeniedError(LedgerServiceError):
    pass


class LedgerConsistencyError(LedgerServiceError):
    """The stored ledger contradicts its own invariants.

    Raised for internal corruption (negative balance, orphaned rows), never
    for something a user did. Callers must not translate it into a
    business-rule rejection.
    """


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class LedgerService:
    def __init__(self, storage: Optional[InMemoryStorage] = None):
        self.storage = storage or InMemoryStorage()

    def get_user(self, user_id: int) -> User:
        data = self.storage.users.get(user_id)
        if not data:
            raise UnknownUserError(f"User {user_id} not found")
        return User(**data)

    def append(
        self,
        user_id: int,
        type: TransactionType,
        amount: int,
        description: str,
        related_entity: Optional[str] = None,
        source: TransactionSource = TransactionSource.ALLOCATION,
        metadata: Optional[dict] = None,
    ) -> Transaction:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmountError(f"Amount must be a positive integer, got {amount!r}")
        if user_id not in self.storage.users:
            raise UnknownUserError(f"User {user_id} not found")

        row = self.storage.insert_transaction({
            "user_id": user_id,
            "type": TransactionType(type),
            "amount": amount,
            "description": description,
            "related_entity": related_entity,
            "source": TransactionSource(source),
            "metadata": metadata or {},
        })
        log.debug("Appended %s of %d for user %s (tx %s)", row["type"].value, amount, user_id, row["id"])
        return Transaction(**row)

    def iter_by_user(self, user_id: int, page_size: int = 50) -> Iterator[Transaction]:
        """Newest-first transactions for a user, fetched one page at a time.

        Each page resumes strictly after the last (created_at, id) seen, so
        rows appended while iterating are not picked up and nothing already
        yielded is repeated. Calling again restarts from the newest row.
        """
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        cursor = None
        while True:
            rows = self.storage.transactions_for_user(user_id)
            keyed = sorted(rows, key=lambda r: (r["created_at"], r["id"]), reverse=True)
            if cursor is not None:
                keyed = [r for r in keyed if (r["created_at"], r["id"]) < cursor]
            page = keyed[:page_size]
            for row in page:
                yield Transaction(**row)
            if len(page) < page_size:
                return
            cursor = (page[-1]["created_at"], page[-1]["id"])

    def list_by_user(self, user_id: int, limit: int = 50, offset: int = 0) -> list[Transaction]:
        rows = self.storage.transactions_for_user(user_id)
        rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
        return [Transaction(**r) for r in rows[offset:offset + limit]]

    def balance_of(self, user_id: int) -> int:
        if user_id not in self.storage.users:
            raise UnknownUserError(f"User {user_id} not found")
        rows = self.storage.transactions_for_user(user_id)
        earned = sum(r["amount"] for r in rows if r["type"] == TransactionType.EARNING)
        spent = sum(r["amount"] for r in rows if r["type"] == TransactionType.REDEMPTION)
        balance = earned - spent
        if balance < 0:
            log.error("Negative balance %d for user %s (earned=%d, spent=%d)", balance, user_id, earned, spent)
            raise LedgerConsistencyError(f"Ledger for user {user_id} sums to negative balance {balance}")
        return balance

    def get_balance(self, user_id: int) -> UserBalance:
        balance = self.balance_of(user_id)
        rows = self.storage.transactions_for_user(user_id)
        last_entry = max(rows, key=lambda r: (r["created_at"], r["id"])) if rows else None
        return UserBalance(
            user_id=user_id,
            current_balance=balance,
            total_entries=len(rows),
            last_transaction_at=last_entry["created_at"] if last_entry else None,
        )

    def get_ledger_history(self, user_id: int, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        balance = self.balance_of(user_id)
        return LedgerHistoryResponse(
            user_id=user_id,
            entries=self.list_by_user(user_id, limit, offset),
            total_count=len(self.storage.transactions_for_user(user_id)),
            current_balance=balance,
        )

    def installation_count(self, user_id: int, since: Optional[datetime] = None) -> int:
        return sum(
            1 for r in self.storage.transactions_for_user(user_id)
            if r["type"] == TransactionType.EARNING
            and r["source"] == TransactionSource.SCAN
            and (since is None or r["created_at"] >= since)
        )

    def installation_stats(self, user_id: int, now: Optional[datetime] = None) -> InstallationStats:
        self.get_user(user_id)
        now = now or self.storage.clock()
        return InstallationStats(
            user_id=user_id,
            total=self.installation_count(user_id),
            this_month=self.installation_count(user_id, since=_month_start(now)),
        )

    def allocate_points(self, request: AllocatePointsRequest) -> Transaction:
        admin = self.get_user(request.admin_id)
        if admin.role != UserRole.ADMIN:
            raise PermissionDeniedError(f"User {request.admin_id} is not allowed to allocate points")
        self.get_user(request.user_id)

        activity = request.activity_type.value
        transaction = self.append(
            user_id=request.user_id,
            type=TransactionType.EARNING,
            amount=request.amount,
            description=request.description or f"Reward points - {activity}",
            source=TransactionSource.ALLOCATION,
            metadata={"activity_type": activity, "allocated_by": request.admin_id},
        )
        log.info("Admin %s allocated %d points to user %s (%s)", request.admin_id, request.amount, request.user_id, activity)
        return transaction

    def program_summary(self, now: Optional[datetime] = None) -> ProgramSummary:
        now = now or self.storage.clock()
        month_start = _month_start(now)
        rows = self.storage.all_transactions()

        orphaned = {r["user_id"] for r in rows} - set(self.storage.users)
        if orphaned:
            log.error("Transactions reference unknown users %s", sorted(orphaned))
            raise LedgerConsistencyError(f"Transactions reference unknown users {sorted(orphaned)}")

        return ProgramSummary(
            total_users=len(self.storage.users),
            total_points_issued=sum(r["amount"] for r in rows if r["type"] == TransactionType.EARNING),
            total_points_redeemed=sum(r["amount"] for r in rows if r["type"] == TransactionType.REDEMPTION),
            scans_this_month=sum(
                1 for r in self.storage.all_scan_records() if r["scanned_at"] >= month_start
            ),
        )

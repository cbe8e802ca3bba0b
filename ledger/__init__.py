"""
Points Ledger for Installer Rewards

This module provides:
- Append-only transaction records (earnings and redemptions)
- Balance derived from the ledger on every read, never stored
- Exactly-once scan records keyed by product token
- Admin point allocation and installation statistics
"""

from .models import (
    TransactionType,
    TransactionSource,
    ActivityType,
    Transaction,
    ScanRecord,
    UserBalance,
)
from .service import LedgerService
from .storage import InMemoryStorage

__all__ = [
    "TransactionType",
    "TransactionSource",
    "ActivityType",
    "Transaction",
    "ScanRecord",
    "UserBalance",
    "LedgerService",
    "InMemoryStorage",
]

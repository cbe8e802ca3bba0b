"""
Product code scanning: validation, exactly-once claims and crediting.
"""

from .models import ScanErrorCode, ScanState, ScanRequest, ScanResponse
from .validator import CodeValidator
from .guard import RedemptionGuard
from .orchestrator import ScanService

__all__ = [
    "ScanErrorCode",
    "ScanState",
    "ScanRequest",
    "ScanResponse",
    "CodeValidator",
    "RedemptionGuard",
    "ScanService",
]

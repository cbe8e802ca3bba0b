from datetime import datetime
from typing import Any, Optional

from .models import ScanErrorCode, ScanState


class ScanError(Exception):
    """A scan that is rejected for a reason the installer can act on."""

    error_code: ScanErrorCode
    state: ScanState

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class MalformedCodeError(ScanError):
    error_code = ScanErrorCode.INVALID_FORMAT
    state = ScanState.REJECTED_MALFORMED


class InvalidTokenError(ScanError):
    error_code = ScanErrorCode.INVALID_UUID
    state = ScanState.REJECTED_MALFORMED


class UnknownProductError(ScanError):
    error_code = ScanErrorCode.UNKNOWN_PRODUCT
    state = ScanState.REJECTED_UNKNOWN


class InactiveProductError(ScanError):
    error_code = ScanErrorCode.INACTIVE_PRODUCT
    state = ScanState.REJECTED_INACTIVE


class DuplicateScanError(ScanError):
    error_code = ScanErrorCode.DUPLICATE_SCAN
    state = ScanState.REJECTED_DUPLICATE

    def __init__(self, token: str, scanned_by: int, scanned_at: datetime):
        super().__init__(
            f"Code {token} was already redeemed",
            details={"scannedBy": scanned_by, "scannedAt": scanned_at.isoformat()},
        )
        self.token = token
        self.scanned_by = scanned_by
        self.scanned_at = scanned_at

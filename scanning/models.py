from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ScanErrorCode(str, Enum):
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_UUID = "INVALID_UUID"
    UNKNOWN_PRODUCT = "UNKNOWN_PRODUCT"
    INACTIVE_PRODUCT = "INACTIVE_PRODUCT"
    DUPLICATE_SCAN = "DUPLICATE_SCAN"


class ScanState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    CLAIMED = "claimed"
    RECORDED = "recorded"
    COMPLETED = "completed"
    ALREADY_CREDITED = "already_credited"
    REJECTED_MALFORMED = "rejected_malformed"
    REJECTED_DUPLICATE = "rejected_duplicate"
    REJECTED_INACTIVE = "rejected_inactive"
    REJECTED_UNKNOWN = "rejected_unknown"


class ScanRequest(BaseModel):
    token: str = Field(..., description="Raw text decoded from the QR symbol")
    user_id: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, json_schema_extra={
        "example": {
            "token": "https://warranty.bareeq.lighting/p/3f2b8c1e-9d4a-4e6b-8a7c-1d2e3f4a5b6c",
            "userId": 2,
        }
    })


class ScanResponse(BaseModel):
    success: bool
    outcome: ScanState
    message: str
    product_name: Optional[str] = None
    points_awarded: Optional[int] = None
    new_balance: Optional[int] = None
    newly_earned_badges: list[int] = Field(default_factory=list)
    error_code: Optional[ScanErrorCode] = None
    details: Optional[dict[str, Any]] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClaimedProduct(BaseModel):
    token: str
    product_id: int
    product_name: str
    point_value: int
    scanned_at: datetime

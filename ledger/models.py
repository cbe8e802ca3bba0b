from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class TransactionType(str, Enum):
    EARNING = "earning"
    REDEMPTION = "redemption"


class TransactionSource(str, Enum):
    SCAN = "scan"
    ALLOCATION = "allocation"
    REWARD = "reward"


class ActivityType(str, Enum):
    INSTALLATION = "installation"
    MAINTENANCE = "maintenance"
    TRAINING = "training"
    OTHER = "other"


class UserRole(str, Enum):
    ADMIN = "admin"
    INSTALLER = "installer"


class UserStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(BaseModel):
    id: int
    name: str
    phone: str
    region: Optional[str] = None
    role: UserRole = UserRole.INSTALLER
    status: UserStatus = UserStatus.ACTIVE
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Transaction(BaseModel):
    id: int
    user_id: int
    type: TransactionType
    amount: int
    description: str
    related_entity: Optional[str] = None
    source: TransactionSource
    created_at: datetime
    metadata: dict = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class ScanRecord(BaseModel):
    token: str
    user_id: int
    scanned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AllocatePointsRequest(BaseModel):
    admin_id: int
    user_id: int
    amount: int = Field(..., gt=0)
    activity_type: ActivityType
    description: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "admin_id": 1,
            "user_id": 2,
            "amount": 50,
            "activity_type": "training",
            "description": "Completed product training"
        }
    })


class UserBalance(BaseModel):
    user_id: int
    current_balance: int
    total_entries: int
    last_transaction_at: Optional[datetime] = None


class LedgerHistoryResponse(BaseModel):
    user_id: int
    entries: list[Transaction]
    total_count: int
    current_balance: int


class InstallationStats(BaseModel):
    user_id: int
    total: int
    this_month: int


class ProgramSummary(BaseModel):
    total_users: int
    total_points_issued: int
    total_points_redeemed: int
    scans_this_month: int

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ledger.models import Transaction


class RedemptionErrorCode(str, Enum):
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    UNKNOWN_REWARD = "UNKNOWN_REWARD"


class RedeemRewardRequest(BaseModel):
    user_id: int
    reward_id: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RedemptionResponse(BaseModel):
    success: bool
    message: str
    transaction: Optional[Transaction] = None
    new_balance: Optional[int] = None
    error_code: Optional[RedemptionErrorCode] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

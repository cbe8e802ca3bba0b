"""
Reward redemption: spend ledger points on catalog rewards.
"""

from .models import RedemptionErrorCode, RedeemRewardRequest, RedemptionResponse
from .service import (
    RedemptionService,
    RedemptionError,
    InsufficientBalanceError,
    UnknownRewardError,
)

__all__ = [
    "RedemptionErrorCode",
    "RedeemRewardRequest",
    "RedemptionResponse",
    "RedemptionService",
    "RedemptionError",
    "InsufficientBalanceError",
    "UnknownRewardError",
]

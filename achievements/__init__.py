"""
Achievement Package

Level thresholds and badge evaluation. Both are pure functions of the
current ledger and catalog; no achievement state is ever stored.
"""

from .levels import LevelTable
from .badges import (
    AchievementService,
    AchievementContext,
    BadgeRule,
    Requirement,
    RequirementKind,
    earned_badges,
)

__all__ = [
    "LevelTable",
    "AchievementService",
    "AchievementContext",
    "BadgeRule",
    "Requirement",
    "RequirementKind",
    "earned_badges",
]

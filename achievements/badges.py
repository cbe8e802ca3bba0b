import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from catalog.models import Badge
from catalog.service import InMemoryCatalog
from ledger.service import LedgerService
from .levels import LevelTable
from .models import AchievementSummary

log = logging.getLogger("rewards.achievements")


class RequirementKind(str, Enum):
    POINTS = "points"
    INSTALLATIONS = "installations"
    LEVEL = "level"


@dataclass(frozen=True)
class AchievementContext:
    balance: int
    level: int
    installation_count: int

    def value_for(self, kind: RequirementKind) -> int:
        if kind == RequirementKind.POINTS:
            return self.balance
        if kind == RequirementKind.INSTALLATIONS:
            return self.installation_count
        if kind == RequirementKind.LEVEL:
            return self.level
        raise ValueError(f"Unknown requirement kind {kind!r}")


@dataclass(frozen=True)
class Requirement:
    kind: RequirementKind
    threshold: int = 0

    def is_met(self, context: AchievementContext) -> bool:
        # zero or unset thresholds never block a badge
        if self.threshold <= 0:
            return True
        return context.value_for(self.kind) >= self.threshold


@dataclass(frozen=True)
class BadgeRule:
    badge_id: int
    requirements: tuple[Requirement, ...] = field(default_factory=tuple)

    @classmethod
    def from_badge(cls, badge: Badge) -> "BadgeRule":
        return cls(
            badge_id=badge.id,
            requirements=(
                Requirement(RequirementKind.POINTS, badge.required_points),
                Requirement(RequirementKind.INSTALLATIONS, badge.min_installations),
                Requirement(RequirementKind.LEVEL, badge.min_level),
            ),
        )

    def evaluate(self, context: AchievementContext) -> bool:
        return all(req.is_met(context) for req in self.requirements)


def earned_badges(badges: Iterable[Badge], context: AchievementContext) -> set[int]:
    """Ids of the active badges whose every requirement the context meets."""
    return {
        badge.id for badge in badges
        if badge.active and BadgeRule.from_badge(badge).evaluate(context)
    }


class AchievementService:
    """Derives level and badge membership from the ledger on every call.

    Nothing here is persisted: editing a badge's thresholds in the catalog
    changes who holds it on the very next read.
    """

    def __init__(
        self,
        ledger: LedgerService,
        catalog: InMemoryCatalog,
        levels: Optional[LevelTable] = None,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.levels = levels or LevelTable()

    def context_for(self, user_id: int) -> AchievementContext:
        balance = self.ledger.balance_of(user_id)
        return AchievementContext(
            balance=balance,
            level=self.levels.level_of(balance),
            installation_count=self.ledger.installation_count(user_id),
        )

    def earned_badges(self, user_id: int) -> set[int]:
        return earned_badges(self.catalog.list_badges(active=True), self.context_for(user_id))

    def summary(self, user_id: int) -> AchievementSummary:
        context = self.context_for(user_id)
        progress = self.levels.progress(context.balance)
        badge_ids = earned_badges(self.catalog.list_badges(active=True), context)
        return AchievementSummary(
            user_id=user_id,
            balance=context.balance,
            level=context.level,
            progress=progress.percentage,
            points_to_next_level=progress.points_remaining,
            installation_count=context.installation_count,
            earned_badge_ids=sorted(badge_ids),
        )

from bisect import bisect_right
from dataclasses import dataclass
from typing import Sequence

from config.settings import DEFAULT_LEVEL_THRESHOLDS, parse_thresholds
from .models import LevelProgress


@dataclass(frozen=True)
class LevelTable:
    """Step function from points to level.

    ``thresholds[i]`` is the minimum balance for level ``i + 1``; the first
    threshold is always 0 so every balance has a level.
    """
    thresholds: tuple[int, ...] = DEFAULT_LEVEL_THRESHOLDS

    def __post_init__(self):
        parse_thresholds(",".join(str(t) for t in self.thresholds))

    @classmethod
    def from_sequence(cls, thresholds: Sequence[int]) -> "LevelTable":
        return cls(thresholds=tuple(thresholds))

    @property
    def max_level(self) -> int:
        return len(self.thresholds)

    def level_of(self, balance: int) -> int:
        if balance < 0:
            raise ValueError(f"Balance cannot be negative, got {balance}")
        return bisect_right(self.thresholds, balance)

    def progress(self, balance: int) -> LevelProgress:
        level = self.level_of(balance)
        if level == self.max_level:
            return LevelProgress(
                level=level, percentage=100, points_remaining=0,
                next_level_points=self.thresholds[-1],
            )

        floor = self.thresholds[level - 1]
        ceiling = self.thresholds[level]
        percentage = (balance - floor) * 100 // (ceiling - floor)
        return LevelProgress(
            level=level,
            percentage=percentage,
            points_remaining=ceiling - balance,
            next_level_points=ceiling,
        )

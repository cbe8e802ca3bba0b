from pydantic import BaseModel


class LevelProgress(BaseModel):
    level: int
    percentage: int
    points_remaining: int
    next_level_points: int


class AchievementSummary(BaseModel):
    user_id: int
    balance: int
    level: int
    progress: int
    points_to_next_level: int
    installation_count: int
    earned_badge_ids: list[int]

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


DEFAULT_LEVEL_THRESHOLDS = (0, 1000, 2500, 5000, 10000)


def is_enabled(flag: str, default: bool = False) -> bool:
    return os.getenv(flag, str(default)).lower() == "true"


def parse_thresholds(raw: str) -> tuple[int, ...]:
    """Parse "0,1000,2500" into an ascending tuple starting at zero."""
    try:
        values = tuple(int(part.strip()) for part in raw.split(",") if part.strip())
    except ValueError:
        raise ValueError(f"Level thresholds must be integers, got {raw!r}")
    if not values or values[0] != 0:
        raise ValueError("Level thresholds must start at 0")
    if any(b <= a for a, b in zip(values, values[1:])):
        raise ValueError(f"Level thresholds must be strictly ascending, got {raw!r}")
    return values


@dataclass(frozen=True)
class Settings:
    long_domain: str = "warranty.bareeq.lighting"
    short_domain: str = "w.bareeq.lighting"
    code_path_prefix: str = "/p/"
    level_thresholds: tuple[int, ...] = DEFAULT_LEVEL_THRESHOLDS
    log_level: str = "INFO"
    seed_data: bool = True
    groq_api_key: Optional[str] = field(default=None, repr=False)
    insight_model: str = "llama-3.3-70b-versatile"

    @classmethod
    def from_env(cls) -> "Settings":
        thresholds = os.getenv("REWARDS_LEVEL_THRESHOLDS")
        return cls(
            long_domain=os.getenv("REWARDS_LONG_DOMAIN", cls.long_domain),
            short_domain=os.getenv("REWARDS_SHORT_DOMAIN", cls.short_domain),
            code_path_prefix=os.getenv("REWARDS_CODE_PATH_PREFIX", cls.code_path_prefix),
            level_thresholds=parse_thresholds(thresholds) if thresholds else DEFAULT_LEVEL_THRESHOLDS,
            log_level=os.getenv("REWARDS_LOG_LEVEL", cls.log_level).upper(),
            seed_data=is_enabled("REWARDS_SEED_DATA", True),
            groq_api_key=os.getenv("GROQ_API_KEY"),
            insight_model=os.getenv("REWARDS_INSIGHT_MODEL", cls.insight_model),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()

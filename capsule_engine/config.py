from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import Any, Dict, List, Optional

from capsule_engine.models.gamification import StudyAction

# Get the project root directory (parent of capsule_engine folder)
PROJECT_ROOT = Path(__file__).parent.parent

# Caller-facing option names mapped to settings fields
RECOGNIZED_OPTIONS = {
    "intervalsDays": "intervals_days",
    "xpPerAction": "xp_per_action",
    "xpToLevelMultiplier": "xp_to_level_multiplier",
}

DEFAULT_XP_PER_ACTION = {
    "create": 100,
    "quiz": 50,
    "flashcard": 20,
    "join_group": 50,
    "challenge": 150,
}


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    # Review schedule (days per stage, last value repeats)
    intervals_days: List[int] = [1, 3, 7, 14, 30, 60, 90, 120]
    retention_decay_rate: float = 0.15
    overdue_grace_ratio: float = 0.5

    # Progression
    xp_per_action: Dict[str, int] = dict(DEFAULT_XP_PER_ACTION)
    xp_to_level_multiplier: int = 200
    perfect_quiz_bonus: int = 20
    streak_timezone: str = "UTC"

    log_level: str = "WARNING"

    class Config:
        env_prefix = "CAPSULE_"
        env_file = str(PROJECT_ROOT / ".env")
        extra = "ignore"

    @field_validator("intervals_days")
    @classmethod
    def check_intervals(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("intervals_days must contain at least one stage")
        if any(days < 0 for days in value):
            raise ValueError("intervals_days cannot contain negative day counts")
        return value

    @field_validator("xp_to_level_multiplier")
    @classmethod
    def check_multiplier(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("xp_to_level_multiplier must be positive")
        return value

    @model_validator(mode="after")
    def check_xp_table(self) -> "Settings":
        missing = [a.value for a in StudyAction if a.value not in self.xp_per_action]
        if missing:
            raise ValueError(f"xp_per_action has no amount for: {', '.join(missing)}")
        unknown = set(self.xp_per_action) - {a.value for a in StudyAction}
        if unknown:
            raise ValueError(f"xp_per_action has unknown actions: {', '.join(sorted(unknown))}")
        if any(amount < 0 for amount in self.xp_per_action.values()):
            raise ValueError("xp_per_action amounts cannot be negative")
        return self

    @classmethod
    def from_options(cls, options: Optional[Dict[str, Any]] = None, **overrides: Any) -> "Settings":
        """
        Build settings from caller options.

        Accepts the camelCase option names (intervalsDays, xpPerAction,
        xpToLevelMultiplier) as well as plain field names. A partial
        xpPerAction mapping is merged over the default amounts.
        """
        values: Dict[str, Any] = {}
        for key, value in {**(options or {}), **overrides}.items():
            values[RECOGNIZED_OPTIONS.get(key, key)] = value

        if "xp_per_action" in values:
            values["xp_per_action"] = {**DEFAULT_XP_PER_ACTION, **values["xp_per_action"]}

        return cls(**values)


settings = Settings()

from enum import Enum
from typing import Optional, Tuple

from pydantic import Field

from capsule_engine.models.base import RecordModel


class StudyAction(str, Enum):
    """Study event that earns progression rewards"""
    CREATE = "create"
    QUIZ = "quiz"
    FLASHCARD = "flashcard"
    JOIN_GROUP = "join_group"
    CHALLENGE = "challenge"


class BadgeId(str, Enum):
    FIRST_CAPSULE = "first_capsule"
    CREATOR_10 = "creator_10"
    QUIZ_MASTER = "quiz_master"
    STREAK_3 = "streak_3"
    STREAK_7 = "streak_7"
    SOCIAL_BUTTERFLY = "social_butterfly"


class Badge(RecordModel):
    """Achievement marker; unlocked_at is set once the badge is earned"""
    id: BadgeId
    name: str
    description: str
    icon: str
    unlocked_at: Optional[int] = None  # ms epoch


class GamificationStats(RecordModel):
    """Per-learner progression state"""
    xp: int = Field(default=0, ge=0)
    level: int = 1
    current_streak: int = 0
    last_study_date: str = ""  # YYYY-MM-DD, empty before any activity
    badges: Tuple[Badge, ...] = ()

    @property
    def unlocked_badge_ids(self) -> set:
        return {badge.id for badge in self.badges}

from enum import Enum
from typing import List

from capsule_engine.models.base import RecordModel
from capsule_engine.models.gamification import Badge, GamificationStats


class StageStatus(str, Enum):
    COMPLETED = "completed"
    DUE = "due"
    UPCOMING = "upcoming"


class ReviewStageInfo(RecordModel):
    """Schema for one stage of a capsule's review timeline"""
    stage: int  # 1-based, for display
    interval_days: int
    review_date: int  # ms epoch, 0 for completed stages
    status: StageStatus


class GlobalPerformance(RecordModel):
    """Schema for aggregate performance over a capsule collection"""
    global_mastery: int = 0
    retention_average: int = 0
    due_count: int = 0
    overdue_count: int = 0
    upcoming_count: int = 0


class StatusBucket(RecordModel):
    count: int = 0
    percent: float = 0.0


class StatusBreakdown(RecordModel):
    """Schema for due / in-progress / new split of a collection"""
    due: StatusBucket = StatusBucket()
    in_progress: StatusBucket = StatusBucket()
    new: StatusBucket = StatusBucket()
    total: int = 0


class ProgressionResult(RecordModel):
    """Schema for the outcome of one progression action"""
    stats: GamificationStats
    new_badges: List[Badge] = []
    level_up: bool = False

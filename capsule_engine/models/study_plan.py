from enum import Enum
from typing import Tuple

from capsule_engine.models.base import RecordModel


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TaskType(str, Enum):
    REVIEW = "review"
    LEARN = "learn"
    QUIZ = "quiz"


class StudyTask(RecordModel):
    """Single capsule to work on during a study day"""
    capsule_id: str
    title: str
    estimated_minutes: int
    status: TaskStatus = TaskStatus.PENDING
    type: TaskType = TaskType.REVIEW


class DailySession(RecordModel):
    """Tasks scheduled for one calendar day"""
    date: str  # YYYY-MM-DD
    tasks: Tuple[StudyTask, ...] = ()
    total_minutes: int = 0
    is_rest_day: bool = False


class StudyPlan(RecordModel):
    """Exam preparation plan spread over the days before the exam"""
    id: str
    name: str
    exam_date: int  # ms epoch
    daily_minutes_available: int
    schedule: Tuple[DailySession, ...] = ()
    created_at: int
    capsule_ids: Tuple[str, ...] = ()

from capsule_engine.models.capsule import (
    Capsule,
    Flashcard,
    KeyConcept,
    QuizQuestion,
    ReviewLog,
    ReviewType,
)
from capsule_engine.models.gamification import Badge, BadgeId, GamificationStats, StudyAction
from capsule_engine.models.study_plan import DailySession, StudyPlan, StudyTask, TaskStatus, TaskType

__all__ = [
    "Capsule",
    "Flashcard",
    "KeyConcept",
    "QuizQuestion",
    "ReviewLog",
    "ReviewType",
    "Badge",
    "BadgeId",
    "GamificationStats",
    "StudyAction",
    "DailySession",
    "StudyPlan",
    "StudyTask",
    "TaskStatus",
    "TaskType",
]

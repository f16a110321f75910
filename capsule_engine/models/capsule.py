from enum import Enum
from typing import Optional, Tuple

from pydantic import Field

from capsule_engine.models.base import RecordModel


class ReviewType(str, Enum):
    QUIZ = "quiz"
    FLASHCARD = "flashcard"
    ACTIVE_LEARNING = "active-learning"
    MANUAL = "manual"


class ReviewLog(RecordModel):
    """One logged review of a capsule"""
    date: int  # ms epoch
    score: int = Field(ge=0, le=100)
    type: ReviewType = ReviewType.MANUAL


class KeyConcept(RecordModel):
    concept: str
    explanation: str = ""


class Flashcard(RecordModel):
    front: str
    back: str


class QuizQuestion(RecordModel):
    question: str
    options: Tuple[str, ...] = ()
    correct_answer: str = ""
    explanation: str = ""


class Capsule(RecordModel):
    """Unit of study material with its review record"""
    id: str
    created_at: int  # ms epoch
    last_reviewed: Optional[int] = None  # None until the first review
    review_stage: int = Field(default=0, ge=0)
    history: Tuple[ReviewLog, ...] = ()

    # Content supplied by the content source, only read for time estimates
    title: str = ""
    key_concepts: Tuple[KeyConcept, ...] = ()
    flashcards: Tuple[Flashcard, ...] = ()
    quiz: Tuple[QuizQuestion, ...] = ()

    @property
    def is_new(self) -> bool:
        return self.last_reviewed is None

    @property
    def reference_time(self) -> int:
        """Timestamp the next interval is counted from"""
        return self.last_reviewed if self.last_reviewed is not None else self.created_at

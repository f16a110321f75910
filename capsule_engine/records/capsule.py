from typing import Optional

from capsule_engine.models import Capsule, ReviewLog, ReviewType
from capsule_engine.srs import now_ms


def new_capsule(capsule_id: str, title: str = "", created_at: Optional[int] = None, **content) -> Capsule:
    """Create a capsule at stage 0 that has never been reviewed"""
    return Capsule(
        id=capsule_id,
        title=title,
        created_at=now_ms() if created_at is None else created_at,
        last_reviewed=None,
        review_stage=0,
        history=(),
        **content
    )


def mark_capsule_reviewed(
    capsule: Capsule,
    score: int = 100,
    review_type: ReviewType = ReviewType.MANUAL,
    reviewed_at: Optional[int] = None
) -> Capsule:
    """Log a completed review and advance the capsule one stage"""
    reviewed_at = now_ms() if reviewed_at is None else reviewed_at
    log = ReviewLog(date=reviewed_at, score=score, type=review_type)
    return capsule.model_copy(update={
        "last_reviewed": reviewed_at,
        "review_stage": capsule.review_stage + 1,
        "history": capsule.history + (log,)
    })


def advance_capsule_stage(capsule: Capsule, reviewed_at: Optional[int] = None) -> Capsule:
    """Advance a capsule one stage without logging a scored review"""
    reviewed_at = now_ms() if reviewed_at is None else reviewed_at
    return capsule.model_copy(update={
        "last_reviewed": reviewed_at,
        "review_stage": capsule.review_stage + 1
    })

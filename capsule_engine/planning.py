import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from loguru import logger

from capsule_engine.models import Capsule, DailySession, StudyPlan, StudyTask, TaskType
from capsule_engine.srs import ONE_DAY_MS, ReviewScheduler, get_scheduler, now_ms, round_half_up

BASE_STUDY_MINUTES = 15
MINUTES_PER_KEY_CONCEPT = 3
MINUTES_PER_FLASHCARD = 1
MINUTES_PER_QUIZ_QUESTION = 2


def estimate_study_time(capsule: Capsule, scheduler: Optional[ReviewScheduler] = None) -> int:
    """
    Estimate minutes needed to study a capsule.

    Grows with the amount of content and shrinks with mastery: a fully
    mastered capsule takes the base time, an unknown one twice that.
    """
    scheduler = scheduler or get_scheduler()

    base_time = (
        BASE_STUDY_MINUTES
        + len(capsule.key_concepts) * MINUTES_PER_KEY_CONCEPT
        + len(capsule.flashcards) * MINUTES_PER_FLASHCARD
        + len(capsule.quiz) * MINUTES_PER_QUIZ_QUESTION
    )
    mastery_factor = 1 + (100 - scheduler.mastery(capsule)) / 100

    return round_half_up(base_time * mastery_factor)


def _day_string(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).date().isoformat()


def generate_study_plan(
    name: str,
    capsules: Sequence[Capsule],
    exam_date: int,
    daily_minutes_available: int,
    now: Optional[int] = None,
    scheduler: Optional[ReviewScheduler] = None,
) -> StudyPlan:
    """
    Spread one review task per capsule over the days before an exam.

    Args:
        name: Plan name
        capsules: Capsules to cover
        exam_date: Exam timestamp in ms epoch
        daily_minutes_available: Study budget per day
        now: Plan start in ms epoch (defaults to wall clock)
        scheduler: Scheduler used for mastery scores

    Returns:
        StudyPlan with one DailySession per day until the exam

    Raises:
        ValueError: if the exam date is not in the future
    """
    scheduler = scheduler or get_scheduler()
    now = now_ms() if now is None else now
    days_until_exam = math.ceil((exam_date - now) / ONE_DAY_MS)

    if days_until_exam <= 0:
        raise ValueError("Exam date must be in the future")

    # Weakest capsules first
    ranked = sorted(capsules, key=scheduler.mastery)
    tasks = [
        StudyTask(
            capsule_id=capsule.id,
            title=capsule.title,
            estimated_minutes=estimate_study_time(capsule, scheduler),
            type=TaskType.REVIEW,
        )
        for capsule in ranked
    ]

    day_tasks: List[List[StudyTask]] = []
    rest_days: List[bool] = []
    task_index = 0

    for day in range(days_until_exam):
        daily: List[StudyTask] = []
        used = 0

        while task_index < len(tasks):
            task = tasks[task_index]
            if used + task.estimated_minutes <= daily_minutes_available:
                daily.append(task)
                used += task.estimated_minutes
                task_index += 1
            else:
                # An oversized task still gets a day of its own
                if not daily:
                    daily.append(task)
                    task_index += 1
                break

        day_tasks.append(daily)
        rest_days.append(not daily and task_index >= len(tasks))

    # Not enough days: double up starting from the first day
    leftover = tasks[task_index:]
    if leftover:
        logger.debug(f"{len(leftover)} tasks did not fit before the exam, doubling up sessions")
    for offset, task in enumerate(leftover):
        day_tasks[offset % days_until_exam].append(task)

    schedule = tuple(
        DailySession(
            date=_day_string(now + day * ONE_DAY_MS),
            tasks=tuple(daily),
            total_minutes=sum(t.estimated_minutes for t in daily),
            is_rest_day=rest_days[day],
        )
        for day, daily in enumerate(day_tasks)
    )

    return StudyPlan(
        id=f"plan_{now}",
        name=name,
        exam_date=exam_date,
        daily_minutes_available=daily_minutes_available,
        schedule=schedule,
        created_at=now,
        capsule_ids=tuple(c.id for c in capsules),
    )

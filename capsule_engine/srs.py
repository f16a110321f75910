import math
import time
from typing import Iterable, List, Optional

from loguru import logger

from capsule_engine.config import Settings, settings as default_settings
from capsule_engine.models import Capsule
from capsule_engine.schemas import (
    GlobalPerformance,
    ReviewStageInfo,
    StageStatus,
    StatusBreakdown,
    StatusBucket,
)

ONE_DAY_MS = 24 * 60 * 60 * 1000

# Mastery caps: schedule progress and recent performance
STAGE_POINTS = 60
PERFORMANCE_POINTS = 40
UNLOGGED_STAGE_POINTS = 20
RECENT_REVIEWS = 3


def now_ms() -> int:
    """Current wall-clock time in ms epoch"""
    return int(time.time() * 1000)


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from zero for positive values"""
    return int(math.floor(value + 0.5))


def get_scheduler(settings: Optional[Settings] = None) -> "ReviewScheduler":
    """Factory function to return a scheduler bound to the configured interval table"""
    return ReviewScheduler(settings or default_settings)


class ReviewScheduler:
    """
    Expanding-interval review scheduler with a forgetting-curve retention estimate.

    Each completed review moves a capsule one stage further along a fixed
    table of day intervals. Stages past the end of the table keep the
    longest interval.
    """

    def __init__(self, settings: Settings):
        self.intervals_days = list(settings.intervals_days)
        self.decay_rate = settings.retention_decay_rate
        self.overdue_grace_ratio = settings.overdue_grace_ratio

    @property
    def stage_count(self) -> int:
        return len(self.intervals_days)

    def interval_days(self, stage: int) -> int:
        """Day count for a stage, clamped to the last table entry"""
        return self.intervals_days[min(stage, self.stage_count - 1)]

    def interval(self, stage: int) -> int:
        """Review interval in ms for a stage"""
        return self.interval_days(stage) * ONE_DAY_MS

    def next_review_at(self, capsule: Capsule) -> int:
        """Timestamp at which the capsule's current stage falls due"""
        return capsule.reference_time + self.interval(capsule.review_stage)

    def is_due(self, capsule: Capsule, now: Optional[int] = None) -> bool:
        """Check if a capsule is due for review; never-reviewed capsules always are"""
        if capsule.last_reviewed is None:
            return True
        now = now_ms() if now is None else now
        return now >= capsule.last_reviewed + self.interval(capsule.review_stage)

    def days_overdue(self, capsule: Capsule, now: Optional[int] = None) -> int:
        """Calculate how many whole days past its review date a capsule is"""
        now = now_ms() if now is None else now
        due_at = self.next_review_at(capsule)
        if now < due_at:
            return 0
        return (now - due_at) // ONE_DAY_MS

    def retention(self, capsule: Capsule, now: Optional[int] = None) -> int:
        """
        Estimate recall probability as a percentage (0-100).

        Exponential forgetting: 100 * e^(-k * t / I) where t is the time since
        the last review and I the interval of the current stage. Unreviewed
        capsules score 0.
        """
        if capsule.last_reviewed is None:
            return 0

        interval = self.interval(capsule.review_stage)
        if interval == 0:
            return 0

        now = now_ms() if now is None else now
        ratio = (now - capsule.last_reviewed) / interval
        probability = 100 * math.exp(-self.decay_rate * ratio)

        return max(0, min(100, round_half_up(probability)))

    def mastery(self, capsule: Capsule) -> int:
        """
        Composite mastery score (0-100).

        Up to 60 points for schedule progress and up to 40 points for the
        average score of the last three logged reviews. A capsule advanced
        without any logged review gets a flat 20 performance points.
        """
        stage_score = min(capsule.review_stage, self.stage_count) / self.stage_count * STAGE_POINTS

        if capsule.history:
            recent = capsule.history[-RECENT_REVIEWS:]
            avg_score = sum(log.score for log in recent) / len(recent)
            performance_score = avg_score / 100 * PERFORMANCE_POINTS
        elif capsule.review_stage > 0:
            performance_score = UNLOGGED_STAGE_POINTS
        else:
            performance_score = 0

        return max(0, min(100, round_half_up(stage_score + performance_score)))

    def schedule(self, capsule: Capsule, now: Optional[int] = None) -> List[ReviewStageInfo]:
        """
        Build the review timeline for display.

        Completed stages come first (no meaningful date), then the next stage
        and one projected stage after it. Nothing is produced past the end of
        the interval table.
        """
        now = now_ms() if now is None else now
        timeline: List[ReviewStageInfo] = []

        for index in range(min(capsule.review_stage, self.stage_count)):
            timeline.append(ReviewStageInfo(
                stage=index + 1,
                interval_days=self.intervals_days[index],
                review_date=0,
                status=StageStatus.COMPLETED,
            ))

        next_index = capsule.review_stage
        if next_index >= self.stage_count:
            return timeline

        next_date = capsule.reference_time + self.interval(next_index)
        timeline.append(ReviewStageInfo(
            stage=next_index + 1,
            interval_days=self.intervals_days[next_index],
            review_date=next_date,
            status=StageStatus.DUE if now >= next_date else StageStatus.UPCOMING,
        ))

        future_index = next_index + 1
        if future_index < self.stage_count:
            timeline.append(ReviewStageInfo(
                stage=future_index + 1,
                interval_days=self.intervals_days[future_index],
                review_date=next_date + self.interval(future_index),
                status=StageStatus.UPCOMING,
            ))

        return timeline

    def is_overdue(self, capsule: Capsule, now: Optional[int] = None) -> bool:
        """Due and past the review date by more than the grace share of the interval"""
        now = now_ms() if now is None else now
        if not self.is_due(capsule, now):
            return False
        interval = self.interval(capsule.review_stage)
        return now > self.next_review_at(capsule) + interval * self.overdue_grace_ratio

    def analyze_global_performance(
        self, capsules: Iterable[Capsule], now: Optional[int] = None
    ) -> GlobalPerformance:
        """Aggregate mastery, retention and due counts over a collection"""
        capsules = list(capsules)
        total = len(capsules)
        if total == 0:
            return GlobalPerformance()

        now = now_ms() if now is None else now
        total_mastery = 0
        total_retention = 0
        due_count = 0
        overdue_count = 0

        for capsule in capsules:
            total_mastery += self.mastery(capsule)
            total_retention += self.retention(capsule, now)
            if self.is_due(capsule, now):
                due_count += 1
                if self.is_overdue(capsule, now):
                    overdue_count += 1

        logger.debug(f"Analyzed {total} capsules: {due_count} due, {overdue_count} overdue")

        return GlobalPerformance(
            global_mastery=round_half_up(total_mastery / total),
            retention_average=round_half_up(total_retention / total),
            due_count=due_count,
            overdue_count=overdue_count,
            upcoming_count=total - due_count,
        )

    def review_queue(self, capsules: Iterable[Capsule], now: Optional[int] = None) -> List[Capsule]:
        """Due capsules, longest-waiting first"""
        now = now_ms() if now is None else now
        due = [c for c in capsules if self.is_due(c, now)]
        return sorted(due, key=lambda c: c.reference_time)

    def status_breakdown(self, capsules: Iterable[Capsule], now: Optional[int] = None) -> StatusBreakdown:
        """Split a collection into due, in-progress and new capsules"""
        now = now_ms() if now is None else now
        due = in_progress = new = 0

        for capsule in capsules:
            if self.is_due(capsule, now):
                due += 1
            elif capsule.last_reviewed is not None:
                in_progress += 1
            else:
                new += 1

        total = due + in_progress + new

        def bucket(count: int) -> StatusBucket:
            return StatusBucket(count=count, percent=count / total * 100 if total else 0.0)

        return StatusBreakdown(
            due=bucket(due),
            in_progress=bucket(in_progress),
            new=bucket(new),
            total=total,
        )

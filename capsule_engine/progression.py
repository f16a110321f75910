from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from loguru import logger

from capsule_engine.config import Settings, settings as default_settings
from capsule_engine.models import Badge, BadgeId, GamificationStats, StudyAction
from capsule_engine.records.gamification import new_gamification_stats
from capsule_engine.schemas import ProgressionResult
from capsule_engine.srs import now_ms

PERFECT_SCORE = 100

BADGE_DEFINITIONS: Dict[BadgeId, Badge] = {
    badge.id: badge
    for badge in (
        Badge(id=BadgeId.FIRST_CAPSULE, name="First Step", description="Create your first capsule.", icon="seed"),
        Badge(id=BadgeId.CREATOR_10, name="Mad Scientist", description="Create 10 capsules.", icon="flask"),
        Badge(id=BadgeId.QUIZ_MASTER, name="Expert", description="Score 100% on a quiz.", icon="trophy"),
        Badge(id=BadgeId.STREAK_3, name="Regular", description="Study 3 days in a row.", icon="flame"),
        Badge(id=BadgeId.STREAK_7, name="Metronome", description="Study 7 days in a row.", icon="fire"),
        Badge(id=BadgeId.SOCIAL_BUTTERFLY, name="Collaborator", description="Join a study group.", icon="users"),
    )
}


def get_engine(settings: Optional[Settings] = None) -> "ProgressionEngine":
    """Factory function to return an engine bound to the configured XP tables"""
    return ProgressionEngine(settings or default_settings)


class ProgressionEngine:
    """
    Experience, level, streak and badge state machine.

    Each call to process_action takes one study action and the learner's
    current stats and returns fresh stats; the input is never modified.
    Levels are a fixed-width staircase: every `xp_to_level_multiplier` XP
    is one level.
    """

    def __init__(self, settings: Settings):
        self.xp_per_action = {StudyAction(k): v for k, v in settings.xp_per_action.items()}
        self.xp_to_level_multiplier = settings.xp_to_level_multiplier
        self.perfect_quiz_bonus = settings.perfect_quiz_bonus
        self.timezone = ZoneInfo(settings.streak_timezone)

    def level(self, xp: int) -> int:
        return xp // self.xp_to_level_multiplier + 1

    def level_progress(self, xp: int) -> float:
        """Percent progress from the current level floor to the next one"""
        floor_xp = (self.level(xp) - 1) * self.xp_to_level_multiplier
        next_xp = self.level(xp) * self.xp_to_level_multiplier
        progress = (xp - floor_xp) / (next_xp - floor_xp) * 100
        return min(100.0, max(0.0, progress))

    def xp_to_next_level(self, xp: int) -> int:
        return self.level(xp) * self.xp_to_level_multiplier - xp

    def initial_stats(self) -> GamificationStats:
        return new_gamification_stats()

    def xp_for(self, action: StudyAction, quiz_score: Optional[int] = None) -> int:
        """XP credited for one action, including the perfect quiz bonus"""
        gain = self.xp_per_action[action]
        if action is StudyAction.QUIZ and quiz_score == PERFECT_SCORE:
            gain += self.perfect_quiz_bonus
        return gain

    def today(self) -> date:
        return datetime.now(self.timezone).date()

    def next_streak(self, stats: GamificationStats, today: date) -> int:
        """
        Streak after studying on `today`.

        Unchanged if today is already recorded, extended if the last study
        day was the previous calendar day, otherwise restarted at 1.
        """
        last_day = _parse_day(stats.last_study_date)
        if last_day == today:
            return stats.current_streak
        if last_day is not None and last_day == today - timedelta(days=1):
            return stats.current_streak + 1
        if stats.current_streak:
            logger.debug(f"Streak of {stats.current_streak} reset (last study day: {stats.last_study_date or 'never'})")
        return 1

    def process_action(
        self,
        stats: GamificationStats,
        action: Union[StudyAction, str],
        capsules_count: int,
        quiz_score: Optional[int] = None,
        today: Optional[date] = None,
        now: Optional[int] = None,
    ) -> ProgressionResult:
        """
        Apply one study action to a learner's progression state.

        Args:
            stats: Current gamification state (left untouched)
            action: Action just performed
            capsules_count: Learner's total capsule count after the action
            quiz_score: Quiz score 0-100, for quiz actions
            today: Calendar day of the action (defaults to today in the configured timezone)
            now: Unlock timestamp for new badges in ms (defaults to wall clock)

        Returns:
            ProgressionResult with the new stats, badges unlocked by this
            call and whether the level increased
        """
        action = StudyAction(action)
        today = today or self.today()
        now = now_ms() if now is None else now

        # 1. Experience and level
        xp = stats.xp + self.xp_for(action, quiz_score)
        old_level = self.level(stats.xp)
        level = self.level(xp)
        level_up = level > old_level
        if level_up:
            logger.debug(f"Level up: {old_level} -> {level} ({xp} XP)")

        # 2. Streak
        streak = self.next_streak(stats, today)

        # 3. Badges
        unlocked = stats.unlocked_badge_ids
        new_badges: List[Badge] = []
        for badge_id in self._earned_badges(action, capsules_count, quiz_score, streak):
            if badge_id in unlocked:
                continue
            badge = BADGE_DEFINITIONS[badge_id].model_copy(update={"unlocked_at": now})
            unlocked.add(badge_id)
            new_badges.append(badge)
            logger.debug(f"Badge unlocked: {badge_id.value}")

        new_stats = stats.model_copy(update={
            "xp": xp,
            "level": level,
            "current_streak": streak,
            "last_study_date": today.isoformat(),
            "badges": stats.badges + tuple(new_badges),
        })

        return ProgressionResult(stats=new_stats, new_badges=new_badges, level_up=level_up)

    def _earned_badges(
        self,
        action: StudyAction,
        capsules_count: int,
        quiz_score: Optional[int],
        streak: int,
    ) -> List[BadgeId]:
        """Badge ids whose unlock condition holds after this action"""
        earned = []
        if action is StudyAction.CREATE:
            if capsules_count >= 1:
                earned.append(BadgeId.FIRST_CAPSULE)
            if capsules_count >= 10:
                earned.append(BadgeId.CREATOR_10)
        if action is StudyAction.QUIZ and quiz_score == PERFECT_SCORE:
            earned.append(BadgeId.QUIZ_MASTER)
        if streak >= 3:
            earned.append(BadgeId.STREAK_3)
        if streak >= 7:
            earned.append(BadgeId.STREAK_7)
        if action is StudyAction.JOIN_GROUP:
            earned.append(BadgeId.SOCIAL_BUTTERFLY)
        return earned


def _parse_day(value: str) -> Optional[date]:
    """Parse a stored YYYY-MM-DD study date; empty or malformed values give None"""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None

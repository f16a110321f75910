"""
Unit tests for ProgressionEngine.

Tests:
- Level staircase and progress
- XP awards per action
- Calendar-day streaks
- Badge unlocking and idempotence
"""

from datetime import date, timedelta

import pytest

from capsule_engine.config import Settings
from capsule_engine.models import BadgeId, GamificationStats, StudyAction
from capsule_engine.progression import BADGE_DEFINITIONS, ProgressionEngine, get_engine

TODAY = date(2026, 3, 10)
NOW = 1_773_100_000_000


def stats(**values):
    return GamificationStats(**values)


def new_badge_ids(result):
    return [badge.id for badge in result.new_badges]


class TestLevels:
    """Tests for level derivation."""

    @pytest.mark.parametrize("xp,level", [(0, 1), (199, 1), (200, 2), (399, 2), (400, 3), (2000, 11)])
    def test_level(self, engine, xp, level):
        assert engine.level(xp) == level

    def test_level_progress(self, engine):
        assert engine.level_progress(0) == 0
        assert engine.level_progress(199) == pytest.approx(99.5)
        assert engine.level_progress(200) == 0
        assert engine.level_progress(300) == pytest.approx(50.0)

    def test_xp_to_next_level(self, engine):
        assert engine.xp_to_next_level(180) == 20
        assert engine.xp_to_next_level(200) == 200

    def test_custom_multiplier(self):
        engine = ProgressionEngine(Settings.from_options({"xpToLevelMultiplier": 100}, _env_file=None))
        assert engine.level(150) == 2
        assert engine.level_progress(150) == pytest.approx(50.0)


class TestExperience:
    """Tests for XP awards."""

    @pytest.mark.parametrize("action,gain", [
        (StudyAction.CREATE, 100),
        (StudyAction.QUIZ, 50),
        (StudyAction.FLASHCARD, 20),
        (StudyAction.CHALLENGE, 150),
        (StudyAction.JOIN_GROUP, 50),
    ])
    def test_flat_award(self, engine, action, gain):
        result = engine.process_action(stats(), action, capsules_count=0, today=TODAY, now=NOW)
        assert result.stats.xp == gain

    def test_perfect_quiz_bonus(self, engine):
        result = engine.process_action(stats(), StudyAction.QUIZ, 0, quiz_score=100, today=TODAY, now=NOW)
        assert result.stats.xp == 70

    def test_no_bonus_below_perfect(self, engine):
        result = engine.process_action(stats(), StudyAction.QUIZ, 0, quiz_score=99, today=TODAY, now=NOW)
        assert result.stats.xp == 50
        assert result.new_badges == []

    def test_action_as_string(self, engine):
        result = engine.process_action(stats(), "flashcard", 0, today=TODAY, now=NOW)
        assert result.stats.xp == 20

    def test_unknown_action(self, engine):
        with pytest.raises(ValueError):
            engine.process_action(stats(), "dance", 0, today=TODAY, now=NOW)

    def test_custom_xp_table(self):
        engine = ProgressionEngine(Settings.from_options({"xpPerAction": {"flashcard": 35}}, _env_file=None))
        result = engine.process_action(stats(), StudyAction.FLASHCARD, 0, today=TODAY, now=NOW)
        assert result.stats.xp == 35
        assert engine.xp_for(StudyAction.CREATE) == 100

    def test_level_up_reported(self, engine):
        result = engine.process_action(stats(xp=150), StudyAction.CREATE, 1, today=TODAY, now=NOW)
        assert result.stats.level == 2
        assert result.level_up is True

    def test_no_level_up(self, engine):
        result = engine.process_action(stats(xp=0), StudyAction.FLASHCARD, 1, today=TODAY, now=NOW)
        assert result.stats.level == 1
        assert result.level_up is False

    def test_input_not_modified(self, engine):
        before = stats(xp=10, current_streak=2, last_study_date="2026-03-09")
        engine.process_action(before, StudyAction.CREATE, 1, today=TODAY, now=NOW)
        assert before.xp == 10
        assert before.current_streak == 2
        assert before.badges == ()


class TestStreak:
    """Tests for calendar-day streak updates."""

    def test_first_activity_starts_streak(self, engine):
        result = engine.process_action(stats(), StudyAction.FLASHCARD, 0, today=TODAY, now=NOW)
        assert result.stats.current_streak == 1
        assert result.stats.last_study_date == "2026-03-10"

    def test_same_day_unchanged(self, engine):
        first = engine.process_action(stats(), StudyAction.FLASHCARD, 0, today=TODAY, now=NOW)
        second = engine.process_action(first.stats, StudyAction.QUIZ, 0, today=TODAY, now=NOW)
        assert second.stats.current_streak == 1

    def test_same_day_keeps_existing_streak(self, engine):
        current = stats(current_streak=4, last_study_date=TODAY.isoformat())
        result = engine.process_action(current, StudyAction.FLASHCARD, 0, today=TODAY, now=NOW)
        assert result.stats.current_streak == 4

    def test_consecutive_day_increments(self, engine):
        current = stats(current_streak=1, last_study_date="2026-03-09")
        result = engine.process_action(current, StudyAction.FLASHCARD, 0, today=TODAY, now=NOW)
        assert result.stats.current_streak == 2
        assert result.stats.last_study_date == "2026-03-10"

    def test_one_missed_day_resets(self, engine):
        current = stats(current_streak=5, last_study_date="2026-03-08")
        result = engine.process_action(current, StudyAction.FLASHCARD, 0, today=TODAY, now=NOW)
        assert result.stats.current_streak == 1

    def test_month_boundary(self, engine):
        current = stats(current_streak=2, last_study_date="2026-02-28")
        result = engine.process_action(current, StudyAction.FLASHCARD, 0, today=date(2026, 3, 1), now=NOW)
        assert result.stats.current_streak == 3

    def test_year_boundary(self, engine):
        current = stats(current_streak=2, last_study_date="2025-12-31")
        result = engine.process_action(current, StudyAction.FLASHCARD, 0, today=date(2026, 1, 1), now=NOW)
        assert result.stats.current_streak == 3

    def test_malformed_date_resets(self, engine):
        current = stats(current_streak=6, last_study_date="yesterday")
        result = engine.process_action(current, StudyAction.FLASHCARD, 0, today=TODAY, now=NOW)
        assert result.stats.current_streak == 1

    def test_defaults_to_today(self, engine):
        result = engine.process_action(stats(), StudyAction.FLASHCARD, 0)
        assert result.stats.last_study_date == engine.today().isoformat()


class TestBadges:
    """Tests for badge rules."""

    def test_first_capsule(self, engine):
        result = engine.process_action(stats(), StudyAction.CREATE, 1, today=TODAY, now=NOW)
        assert new_badge_ids(result) == [BadgeId.FIRST_CAPSULE]
        assert result.new_badges[0].unlocked_at == NOW
        assert result.new_badges[0].name == BADGE_DEFINITIONS[BadgeId.FIRST_CAPSULE].name

    def test_first_capsule_only_once(self, engine):
        first = engine.process_action(stats(), StudyAction.CREATE, 1, today=TODAY, now=NOW)
        second = engine.process_action(first.stats, StudyAction.CREATE, 1, today=TODAY, now=NOW + 1000)

        assert new_badge_ids(first) == [BadgeId.FIRST_CAPSULE]
        assert second.new_badges == []
        assert len(second.stats.badges) == 1
        assert second.stats.badges[0].unlocked_at == NOW

    def test_creator_10(self, engine):
        result = engine.process_action(stats(), StudyAction.CREATE, 10, today=TODAY, now=NOW)
        assert new_badge_ids(result) == [BadgeId.FIRST_CAPSULE, BadgeId.CREATOR_10]

    def test_create_without_capsules(self, engine):
        result = engine.process_action(stats(), StudyAction.CREATE, 0, today=TODAY, now=NOW)
        assert result.new_badges == []

    def test_social_butterfly(self, engine):
        result = engine.process_action(stats(), StudyAction.JOIN_GROUP, 0, today=TODAY, now=NOW)
        assert new_badge_ids(result) == [BadgeId.SOCIAL_BUTTERFLY]

    def test_streak_3(self, engine):
        current = stats(current_streak=2, last_study_date="2026-03-09")
        result = engine.process_action(current, StudyAction.FLASHCARD, 0, today=TODAY, now=NOW)
        assert new_badge_ids(result) == [BadgeId.STREAK_3]

    def test_streak_7_on_any_action(self, engine):
        current = stats(current_streak=6, last_study_date="2026-03-09")
        result = engine.process_action(current, StudyAction.CHALLENGE, 0, today=TODAY, now=NOW)
        assert new_badge_ids(result) == [BadgeId.STREAK_3, BadgeId.STREAK_7]

    def test_existing_badges_kept(self, engine):
        first = engine.process_action(stats(), StudyAction.JOIN_GROUP, 0, today=TODAY, now=NOW)
        second = engine.process_action(first.stats, StudyAction.CREATE, 1, today=TODAY, now=NOW)
        assert [b.id for b in second.stats.badges] == [BadgeId.SOCIAL_BUTTERFLY, BadgeId.FIRST_CAPSULE]

    def test_streak_week(self, engine):
        current = engine.initial_stats()
        unlocked = []
        for offset in range(7):
            result = engine.process_action(current, StudyAction.FLASHCARD, 0, today=TODAY + timedelta(days=offset), now=NOW)
            unlocked.extend(new_badge_ids(result))
            current = result.stats
        assert current.current_streak == 7
        assert unlocked == [BadgeId.STREAK_3, BadgeId.STREAK_7]


class TestProgressionFlow:
    """End-to-end: a perfect quiz crosses a level boundary."""

    def test_perfect_quiz_levels_up(self, engine):
        current = stats(xp=180, level=1, current_streak=0, last_study_date="")
        result = engine.process_action(current, StudyAction.QUIZ, 3, quiz_score=100, today=TODAY, now=NOW)

        assert result.stats.xp == 250
        assert result.stats.level == 2
        assert result.level_up is True
        assert new_badge_ids(result) == [BadgeId.QUIZ_MASTER]
        assert result.stats.current_streak == 1


def test_get_engine_uses_given_settings():
    engine = get_engine(Settings(xp_to_level_multiplier=50, _env_file=None))
    assert engine.level(100) == 3


def test_initial_stats(engine):
    initial = engine.initial_stats()
    assert initial.xp == 0
    assert initial.level == 1
    assert initial.current_streak == 0
    assert initial.last_study_date == ""
    assert initial.badges == ()

from capsule_engine.models import GamificationStats


def new_gamification_stats() -> GamificationStats:
    """Create the starting progression state for a learner"""
    return GamificationStats(xp=0, level=1, current_streak=0, last_study_date="", badges=())

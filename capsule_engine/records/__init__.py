from capsule_engine.records.capsule import advance_capsule_stage, mark_capsule_reviewed, new_capsule
from capsule_engine.records.gamification import new_gamification_stats
from capsule_engine.records.study_plan import update_task_status

__all__ = [
    "new_capsule",
    "mark_capsule_reviewed",
    "advance_capsule_stage",
    "new_gamification_stats",
    "update_task_status",
]

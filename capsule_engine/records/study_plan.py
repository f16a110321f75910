from capsule_engine.models import StudyPlan, TaskStatus


def update_task_status(plan: StudyPlan, date: str, capsule_id: str, status: TaskStatus) -> StudyPlan:
    """Set the status of a capsule's task on one day of the plan"""
    status = TaskStatus(status)
    schedule = []
    for session in plan.schedule:
        if session.date != date:
            schedule.append(session)
            continue
        tasks = tuple(
            task.model_copy(update={"status": status}) if task.capsule_id == capsule_id else task
            for task in session.tasks
        )
        schedule.append(session.model_copy(update={"tasks": tasks}))
    return plan.model_copy(update={"schedule": tuple(schedule)})

"""Helpers for task templates embedded in weeks and days."""
import uuid

# Runtime completion data merged in at read time; never stored on a template
RUNTIME_TASK_FIELDS = ("completed", "completedAt", "completed_at", "taskId", "task_id")

INSTANCE_TASK_FIELDS = ("label", "type", "is_primary", "estimated_minutes", "notes", "tag", "day_tag")


def new_template_id():
    return str(uuid.uuid4())


def normalize_task_templates(tasks):
    """
    Return a copy of ``tasks`` where every task has an id and no runtime
    completion fields.

    Existing ids are kept so per-user tasks created from them keep matching.
    """
    if not isinstance(tasks, list):
        return []
    normalized = []
    for task in tasks:
        if not isinstance(task, dict):
            continue
        clean = {key: value for key, value in task.items() if key not in RUNTIME_TASK_FIELDS}
        clean["id"] = task.get("id") or new_template_id()
        normalized.append(clean)
    return normalized


def to_instance_task(task, source=None):
    """Project a week/day template onto the fields an instance day task carries."""
    instance_task = {"id": task.get("id") or new_template_id()}
    for field in INSTANCE_TASK_FIELDS:
        if field in task:
            instance_task[field] = task[field]
    instance_task["source"] = source if source is not None else task.get("source")
    return instance_task

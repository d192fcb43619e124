"""Coach edits to a cohort's week content, with optional distribution to days."""
import copy
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction

from programs.exceptions import DayNotFound, WeekNotFound
from programs.models import ProgramInstance
from .distribution import distribute_week_tasks, normalize_distribution
from .instances import resolve_cohort_instance
from .member_sync import SyncCounts, sync_days_to_members
from .task_templates import normalize_task_templates

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "name",
    "theme",
    "description",
    "weekly_prompt",
    "manual_notes",
    "coach_recording_url",
    "coach_recording_notes",
)
LIST_FIELDS = ("weekly_habits", "linked_summary_ids", "linked_call_event_ids")


@dataclass
class WeekContentResult:
    week: dict
    distributed: bool = False
    member_sync: Optional[SyncCounts] = None
    member_sync_error: Optional[str] = None


def _clean_text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def find_week_index(weeks, week_ref):
    """
    Position of the week matching ``week_ref`` in ``weeks``.

    ``week_ref`` is tried as a week number first, then as the week's id.
    """
    ref = str(week_ref)
    try:
        number = int(ref)
    except ValueError:
        number = None

    if number is not None:
        for index, week in enumerate(weeks):
            if week.get("week_number") == number:
                return index
    for index, week in enumerate(weeks):
        if week.get("id") is not None and str(week.get("id")) == ref:
            return index
    return None


def apply_week_fields(week, data):
    """Copy of ``week`` with only the fields present in ``data`` applied."""
    updated = copy.deepcopy(week)
    for field in TEXT_FIELDS:
        if field in data:
            updated[field] = _clean_text(data[field])
    for field in LIST_FIELDS:
        if field in data:
            updated[field] = list(data[field] or [])
    if "weekly_tasks" in data:
        updated["weekly_tasks"] = normalize_task_templates(data["weekly_tasks"])
    if "distribution" in data:
        updated["distribution"] = data["distribution"] or None
    updated["has_local_changes"] = True
    return updated


def get_week_content(program, cohort, week_ref):
    instance = resolve_cohort_instance(program, cohort)
    weeks = instance.weeks or []
    index = find_week_index(weeks, week_ref)
    if index is None:
        raise WeekNotFound()
    return instance, weeks[index]


def update_week_content(program, cohort, week_ref, data):
    """
    Apply a coach's edit to one week of the cohort instance.

    Only keys present in ``data`` change. With ``distribute_tasks_now`` the
    week's task templates are laid out across its days and then pushed to
    every member's task list.
    """
    instance = resolve_cohort_instance(program, cohort)
    distribute = bool(data.get("distribute_tasks_now"))

    with transaction.atomic():
        instance = ProgramInstance.objects.select_for_update().get(pk=instance.pk)
        weeks = copy.deepcopy(instance.weeks or [])
        index = find_week_index(weeks, week_ref)
        if index is None:
            raise WeekNotFound()

        week = apply_week_fields(weeks[index], data)
        if distribute:
            policy = normalize_distribution(
                data.get("distribution") or week.get("distribution") or program.task_distribution
            )
            week = distribute_week_tasks(week, week.get("weekly_tasks") or [], policy)
            logger.info(
                f"Distributed {len(week.get('weekly_tasks') or [])} task(s) over "
                f"{len(week.get('days') or [])} day(s) of week {week.get('week_number')} ({policy})"
            )

        weeks[index] = week
        instance.weeks = weeks
        instance.save(update_fields=["weeks", "updated_at"])

    result = WeekContentResult(week=week, distributed=distribute)
    if distribute:
        try:
            result.member_sync = sync_days_to_members(instance, week.get("days") or [])
        except Exception as exc:
            # Week content is saved; members can be brought up to date by a resync
            logger.exception(f"Member sync failed for instance {instance.pk}, week {week.get('week_number')}")
            result.member_sync_error = str(exc)
    return result


def update_instance_day(instance, day_index, data):
    """
    Replace one day's tasks and/or habits in ``instance`` and push that day
    to the members.

    Returns:
        (day dict, SyncCounts)
    """
    with transaction.atomic():
        instance = ProgramInstance.objects.select_for_update().get(pk=instance.pk)
        weeks = copy.deepcopy(instance.weeks or [])
        target = None
        for week in weeks:
            for day in week.get("days") or []:
                if day.get("day_index") == day_index:
                    target = day
                    break
            if target is not None:
                week["has_local_changes"] = True
                break
        if target is None:
            raise DayNotFound()

        if "tasks" in data:
            # Tasks already on the day keep their origin; only new ids are day tasks
            stored_sources = {task.get("id"): task.get("source") for task in target.get("tasks") or []}
            tasks = normalize_task_templates(data["tasks"])
            for task in tasks:
                task["source"] = stored_sources.get(task["id"]) or "day"
            target["tasks"] = tasks
        if "habits" in data:
            target["habits"] = list(data["habits"] or [])
        target["has_local_changes"] = True

        instance.weeks = weeks
        instance.save(update_fields=["weeks", "updated_at"])

    counts = sync_days_to_members(instance, [target])
    return target, counts

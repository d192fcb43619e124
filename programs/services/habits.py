"""
Push a program's default habits into the weeks built from it.

Each day of an instance week gets the program's default habits followed by
the week's own ``weekly_habits``. Client weeks of individual programs get the
default habits ahead of their own.
"""
import copy
import logging
from dataclasses import dataclass

from django.db import transaction

from programs.models import ClientProgramWeek, ProgramInstance
from .instances import resolve_cohort_instance
from .template_sync import SYNCABLE_ENROLLMENT_STATUSES

logger = logging.getLogger(__name__)

HABIT_FREQUENCIES = ("daily", "weekly")


@dataclass
class HabitSyncResult:
    instances_updated: int = 0
    days_updated: int = 0
    client_weeks_updated: int = 0

    def as_dict(self):
        return {
            "instances_updated": self.instances_updated,
            "days_updated": self.days_updated,
            "client_weeks_updated": self.client_weeks_updated,
        }


def normalize_habit_templates(habits):
    """
    Habits as ``{"title", "description", "frequency"}`` dicts.

    Plain strings become titles. Entries without a title are dropped, and a
    title appears once (case-insensitive, first one wins).
    """
    if not isinstance(habits, list):
        return []
    normalized = []
    seen = set()
    for habit in habits:
        if isinstance(habit, str):
            habit = {"title": habit}
        if not isinstance(habit, dict):
            continue
        title = str(habit.get("title") or "").strip()
        if not title or title.lower() in seen:
            continue
        seen.add(title.lower())
        frequency = habit.get("frequency")
        normalized.append({
            "title": title,
            "description": habit.get("description") or None,
            "frequency": frequency if frequency in HABIT_FREQUENCIES else "daily",
        })
    return normalized


def week_habits(program, week_habit_list):
    return normalize_habit_templates(list(program.default_habits or []) + list(week_habit_list or []))


def sync_instance_habits(program, instance, overwrite=False):
    """
    Fill the habits of every day of ``instance``.

    Days that already list habits are left alone unless ``overwrite``.

    Returns:
        Number of days changed
    """
    changed = 0
    with transaction.atomic():
        instance = ProgramInstance.objects.select_for_update().get(pk=instance.pk)
        weeks = copy.deepcopy(instance.weeks or [])
        for week in weeks:
            habits = week_habits(program, week.get("weekly_habits"))
            for day in week.get("days") or []:
                if day.get("habits") and not overwrite:
                    continue
                if day.get("habits") == habits:
                    continue
                day["habits"] = copy.deepcopy(habits)
                changed += 1
        if changed:
            instance.weeks = weeks
            instance.save(update_fields=["weeks", "updated_at"])
    return changed


def sync_program_habits(program, cohort=None, overwrite=False):
    """
    Push ``program.default_habits`` into the program's instances and client weeks.

    Args:
        program: Program whose default habits are pushed
        cohort: Optional cohort; only its instance is synced (created if missing)
        overwrite: Replace habits that are already set instead of only filling empty ones

    Returns:
        HabitSyncResult
    """
    result = HabitSyncResult()
    if cohort is not None:
        instances = [resolve_cohort_instance(program, cohort)]
    else:
        instances = list(ProgramInstance.objects.filter(program=program))

    for instance in instances:
        days = sync_instance_habits(program, instance, overwrite=overwrite)
        if days:
            result.instances_updated += 1
            result.days_updated += days

    if cohort is None and program.program_type == "individual":
        client_weeks = ClientProgramWeek.objects.filter(
            program=program, enrollment__status__in=SYNCABLE_ENROLLMENT_STATUSES
        )
        with transaction.atomic():
            for client_week in client_weeks.select_for_update():
                if client_week.weekly_habits and not overwrite:
                    continue
                habits = week_habits(program, client_week.weekly_habits)
                if habits == client_week.weekly_habits:
                    continue
                client_week.weekly_habits = habits
                client_week.save(update_fields=["weekly_habits", "updated_at"])
                result.client_weeks_updated += 1

    logger.info(
        f"Synced default habits for program {program.pk}: {result.days_updated} day(s) in "
        f"{result.instances_updated} instance(s), {result.client_weeks_updated} client week(s)"
    )
    return result

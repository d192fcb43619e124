"""
Reconcile members' personal Task rows with an instance's day task templates.

For one member and one day the reconciliation is a three-way diff keyed by
template id:

    in both            -> update display fields, completion left alone
    only in templates  -> create (completed=False)
    only in tasks      -> delete (coach removed the template)

Each member+day is written in its own transaction. Nothing spans members, so
a failure part-way leaves earlier members synced; running the sync again is
safe because a second pass over unchanged templates writes nothing.
"""
import logging
from dataclasses import dataclass, asdict

from django.conf import settings
from django.db import transaction

from core.services import ProgramCalendarService
from programs.models import ProgramEnrollment
from tracker.models import Task

logger = logging.getLogger(__name__)


@dataclass
class SyncCounts:
    created: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    members_processed: int = 0

    def add(self, other):
        self.created += other.created
        self.updated += other.updated
        self.deleted += other.deleted
        self.unchanged += other.unchanged
        return self

    @property
    def changed(self):
        return self.created + self.updated + self.deleted

    def as_dict(self):
        return asdict(self)


def _display_values(template, task_date):
    return {
        "label": template.get("label") or "",
        "is_primary": bool(template.get("is_primary", False)),
        "task_type": template.get("type") or "task",
        "estimated_minutes": template.get("estimated_minutes"),
        "notes": template.get("notes"),
        "tag": template.get("tag"),
        "date": task_date,
    }


def sync_day_tasks_to_user(*, instance, user_id, day_index, tasks, calendar_date=None):
    """
    Make one member's tasks for ``(instance, day_index)`` match ``tasks``.

    Args:
        instance: ProgramInstance the templates belong to
        user_id: Member whose tasks are reconciled
        day_index: Global program day index
        tasks: Ordered instance task templates for the day (each with an ``id``)
        calendar_date: ISO date string or date stamped on the tasks

    Returns:
        SyncCounts for this member and day
    """
    counts = SyncCounts()
    task_date = ProgramCalendarService.parse_date(calendar_date)

    with transaction.atomic():
        existing = {
            task.instance_task_id: task
            for task in Task.objects.select_for_update().filter(
                user_id=user_id, instance=instance, day_index=day_index
            )
            if task.instance_task_id
        }

        seen = set()
        to_create = []
        for template in tasks or []:
            template_id = template.get("id")
            if not template_id or template_id in seen:
                continue
            seen.add(template_id)
            values = _display_values(template, task_date)

            current = existing.get(template_id)
            if current is None:
                to_create.append(Task(
                    user_id=user_id,
                    organization_id=instance.organization_id,
                    instance=instance,
                    instance_task_id=template_id,
                    day_index=day_index,
                    source="program",
                    list_type="focus" if values["is_primary"] else "backlog",
                    completed=False,
                    completed_at=None,
                    **values,
                ))
                continue

            changed = [field for field, value in values.items() if getattr(current, field) != value]
            if changed:
                for field in changed:
                    setattr(current, field, values[field])
                current.save(update_fields=changed + ["updated_at"])
                counts.updated += 1
            else:
                counts.unchanged += 1

        if to_create:
            Task.objects.bulk_create(to_create)
            counts.created = len(to_create)

        orphan_ids = [task.pk for template_id, task in existing.items() if template_id not in seen]
        if orphan_ids:
            Task.objects.filter(pk__in=orphan_ids).delete()
            counts.deleted = len(orphan_ids)

    logger.debug(
        f"Synced day {day_index} of instance {instance.pk} for user {user_id}: "
        f"{counts.created} created, {counts.updated} updated, {counts.deleted} deleted"
    )
    return counts


def get_member_user_ids(instance):
    """Users whose tasks follow ``instance``: the cohort roster, or the single enrolled client."""
    statuses = getattr(settings, "MEMBER_SYNC_ENROLLMENT_STATUSES", ["active", "upcoming"])
    if instance.instance_type == "cohort":
        if not instance.cohort_id:
            return []
        return list(
            ProgramEnrollment.objects.filter(cohort_id=instance.cohort_id, status__in=statuses)
            .order_by("user_id")
            .values_list("user_id", flat=True)
            .distinct()
        )
    if instance.enrollment_id:
        return [instance.enrollment.user_id]
    return []


def effective_calendar_date(instance, day):
    """The day's stored calendar date, or one derived from the instance start date."""
    if day.get("calendar_date"):
        return day["calendar_date"]
    if instance.start_date and isinstance(day.get("day_index"), int):
        return ProgramCalendarService.day_index_to_date(
            instance.start_date, day["day_index"], instance.include_weekends
        )
    return None


def sync_days_to_members(instance, days):
    """
    Push the given instance days to every member. A cohort with no active
    members is a no-op.
    """
    totals = SyncCounts()
    member_ids = get_member_user_ids(instance)
    if not member_ids:
        logger.info(f"No members to sync for instance {instance.pk}")
        return totals

    for user_id in member_ids:
        for day in days:
            counts = sync_day_tasks_to_user(
                instance=instance,
                user_id=user_id,
                day_index=day["day_index"],
                tasks=day.get("tasks") or [],
                calendar_date=effective_calendar_date(instance, day),
            )
            totals.add(counts)
    totals.members_processed = len(member_ids)

    logger.info(
        f"Synced {len(days)} day(s) of instance {instance.pk} to {len(member_ids)} member(s): "
        f"{totals.created} created, {totals.updated} updated, {totals.deleted} deleted"
    )
    return totals


def sync_instance_to_members(instance):
    """Full resync of every day of every week."""
    days = [day for week in (instance.weeks or []) for day in (week.get("days") or [])]
    return sync_days_to_members(instance, days)

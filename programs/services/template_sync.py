"""
Push a program's template weeks into the copies made from it: each client's
own weeks for individual programs, the cohort instance for group programs.

Coach-chosen options decide which content categories are overwritten;
positional metadata (week number, module, order, day range) is always
refreshed so client weeks stay aligned with the template.
"""
import copy
import logging
from dataclasses import dataclass, field, fields
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from programs.exceptions import TemplateSyncNotAllowed
from programs.models import ClientProgramWeek, ProgramEnrollment, ProgramInstance
from .distribution import distribute_week_tasks, normalize_distribution
from .instances import build_instance_weeks, get_template_weeks, resolve_cohort_instance
from .member_sync import SyncCounts, sync_days_to_members
from .task_templates import normalize_task_templates

logger = logging.getLogger(__name__)

SYNCABLE_ENROLLMENT_STATUSES = ("active", "upcoming")

POSITIONAL_FIELDS = ("week_number", "module_id", "order", "start_day_index", "end_day_index")

# option -> client week fields it controls
CONTENT_FIELD_GROUPS = {
    "sync_tasks": ("weekly_tasks",),
    "sync_focus": ("current_focus",),
    "sync_notes": ("notes", "manual_notes", "coach_recording_url", "coach_recording_notes"),
    "sync_habits": ("weekly_habits",),
    "sync_prompt": ("weekly_prompt",),
    "sync_name": ("name", "description"),
    "sync_theme": ("theme",),
}

# Client-only fields: start empty on a new client week and only take template
# values when the template actually has one
CLIENT_FIELDS = ("manual_notes", "coach_recording_url", "coach_recording_notes",
                 "linked_summary_ids", "linked_call_event_ids")
LINK_FIELDS = ("linked_summary_ids", "linked_call_event_ids")
RECORDING_FIELDS = ("coach_recording_url", "coach_recording_notes")

# Instance weeks keep their own day range and days
INSTANCE_POSITIONAL_FIELDS = ("week_number", "module_id")


@dataclass
class TemplateSyncOptions:
    sync_tasks: bool = True
    sync_focus: bool = True
    sync_notes: bool = True
    sync_habits: bool = True
    sync_prompt: bool = True
    sync_name: bool = True
    sync_theme: bool = True
    preserve_client_links: bool = False
    preserve_manual_notes: bool = False
    preserve_recordings: bool = False

    @classmethod
    def from_dict(cls, data):
        """Build options from snake_case or camelCase keys; missing keys keep defaults."""
        data = data or {}
        kwargs = {}
        for option in fields(cls):
            camel = _camel(option.name)
            if option.name in data and data[option.name] is not None:
                kwargs[option.name] = bool(data[option.name])
            elif camel in data and data[camel] is not None:
                kwargs[option.name] = bool(data[camel])
        return cls(**kwargs)


def _camel(name):
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class TemplateSyncResult:
    success: object = True
    clients_updated: int = 0
    weeks_updated: int = 0
    weeks_created: int = 0
    errors: List[dict] = field(default_factory=list)

    def finalize(self):
        """True with no errors, "partial" if some clients synced, else False."""
        if self.errors:
            self.success = "partial" if self.clients_updated > 0 else False
        else:
            self.success = True
        return self

    def as_dict(self):
        return {
            "success": self.success,
            "clients_updated": self.clients_updated,
            "weeks_updated": self.weeks_updated,
            "weeks_created": self.weeks_created,
            "errors": list(self.errors),
        }


def _template_value(template_week, name):
    value = template_week.get(name)
    if name == "weekly_tasks":
        return normalize_task_templates(value or [])
    if name in LINK_FIELDS or name == "weekly_habits":
        return list(value or [])
    if value == "":
        return None
    return value


def _template_week_key(template_week):
    return str(template_week.get("id") or template_week.get("week_number"))


def build_week_update(template_week, current, options, positional_fields=POSITIONAL_FIELDS):
    """
    Field values to write onto an existing week copy.

    ``current`` maps field names to the copy's present values and is only
    read for the preserve options, which drop fields even when their category
    is being synced.
    """
    update = {name: template_week.get(name) for name in positional_fields}
    if update.get("week_number") is None:
        update.pop("week_number", None)

    for option_name, field_names in CONTENT_FIELD_GROUPS.items():
        if not getattr(options, option_name):
            continue
        for name in field_names:
            value = _template_value(template_week, name)
            if name in CLIENT_FIELDS and not value:
                continue
            update[name] = value

    for name in LINK_FIELDS:
        value = _template_value(template_week, name)
        if value:
            update[name] = value

    if options.preserve_client_links:
        for name in LINK_FIELDS:
            update.pop(name, None)
    if options.preserve_manual_notes and current.get("manual_notes"):
        update.pop("manual_notes", None)
    if options.preserve_recordings and any(current.get(name) for name in RECORDING_FIELDS):
        for name in RECORDING_FIELDS:
            update.pop(name, None)
    return update


def build_client_week_update(template_week, client_week, options):
    """Field values to write onto an existing ClientProgramWeek."""
    current = {name: getattr(client_week, name) for name in ("manual_notes",) + RECORDING_FIELDS}
    return build_week_update(template_week, current, options)


def build_new_client_week(template_week, enrollment, program):
    """Unsaved ClientProgramWeek copied from the template, client fields empty."""
    return ClientProgramWeek(
        enrollment=enrollment,
        program=program,
        organization_id=program.organization_id,
        user_id=enrollment.user_id,
        program_week_id=_template_week_key(template_week),
        week_number=template_week.get("week_number") or 0,
        module_id=template_week.get("module_id"),
        order=template_week.get("order"),
        start_day_index=template_week.get("start_day_index"),
        end_day_index=template_week.get("end_day_index"),
        name=_template_value(template_week, "name"),
        theme=_template_value(template_week, "theme"),
        description=_template_value(template_week, "description"),
        weekly_prompt=_template_value(template_week, "weekly_prompt"),
        weekly_tasks=_template_value(template_week, "weekly_tasks"),
        weekly_habits=_template_value(template_week, "weekly_habits"),
        current_focus=_template_value(template_week, "current_focus"),
        notes=_template_value(template_week, "notes"),
        distribution=None,
        linked_summary_ids=[],
        linked_call_event_ids=[],
        coach_recording_url=None,
        coach_recording_notes=None,
        manual_notes=None,
        has_local_changes=False,
        last_synced_at=timezone.now(),
    )


def sync_enrollment_weeks(enrollment, program, template_weeks, options):
    """
    Bring one enrollment's client weeks in line with ``template_weeks`` in a
    single transaction.

    Returns:
        (weeks_updated, weeks_created)
    """
    updated = created = 0
    now = timezone.now()
    with transaction.atomic():
        existing = {week.program_week_id: week for week in enrollment.client_weeks.select_for_update()}
        for template_week in template_weeks:
            client_week = existing.get(_template_week_key(template_week))
            if client_week is None:
                build_new_client_week(template_week, enrollment, program).save()
                created += 1
                continue

            values = build_client_week_update(template_week, client_week, options)
            for name, value in values.items():
                setattr(client_week, name, value)
            client_week.has_local_changes = False
            client_week.last_synced_at = now
            client_week.save()
            updated += 1
    return updated, created


def sync_template_to_clients(program, enrollment_ids, options=None, week_numbers: Optional[List[int]] = None):
    """
    Sync template weeks to client weeks for the given enrollments.

    Args:
        program: Individual Program whose template is pushed
        enrollment_ids: List of enrollment ids, or "all" for every active/upcoming enrollment
        options: TemplateSyncOptions (defaults sync everything, preserve nothing)
        week_numbers: Optional subset of template week numbers

    Returns:
        TemplateSyncResult; one enrollment failing does not stop the others
    """
    if program.program_type != "individual":
        raise TemplateSyncNotAllowed()
    options = options or TemplateSyncOptions()
    result = TemplateSyncResult()

    template_weeks = get_template_weeks(program)
    if week_numbers:
        wanted = set(week_numbers)
        template_weeks = [week for week in template_weeks if week.get("week_number") in wanted]
    if not template_weeks:
        logger.info(f"No template weeks to sync for program {program.pk}")
        return result.finalize()

    if enrollment_ids == "all":
        enrollment_ids = list(
            program.enrollments.filter(status__in=SYNCABLE_ENROLLMENT_STATUSES).values_list("pk", flat=True)
        )

    for enrollment_id in enrollment_ids:
        try:
            enrollment = ProgramEnrollment.objects.filter(pk=enrollment_id, program=program).first()
        except (ValueError, TypeError):
            enrollment = None
        if enrollment is None:
            result.errors.append({
                "enrollment_id": enrollment_id,
                "error": "Enrollment not found or does not belong to this program",
            })
            continue

        try:
            updated, created = sync_enrollment_weeks(enrollment, program, template_weeks, options)
        except Exception as exc:
            logger.exception(f"Template sync failed for enrollment {enrollment_id}")
            result.errors.append({"enrollment_id": enrollment_id, "error": str(exc)})
            continue

        result.clients_updated += 1
        result.weeks_updated += updated
        result.weeks_created += created

    logger.info(
        f"Synced {result.weeks_updated} updated / {result.weeks_created} new week(s) "
        f"for {result.clients_updated} client(s) in program {program.pk}"
    )
    return result.finalize()


@dataclass
class CohortTemplateSyncResult:
    instance_id: int
    weeks_updated: int = 0
    weeks_created: int = 0
    distributed: bool = False
    member_sync: Optional[SyncCounts] = None
    member_sync_error: Optional[str] = None

    def as_dict(self):
        data = {
            "success": self.member_sync_error is None,
            "instance_id": self.instance_id,
            "weeks_updated": self.weeks_updated,
            "weeks_created": self.weeks_created,
            "distributed": self.distributed,
        }
        if self.member_sync is not None:
            data["member_sync"] = self.member_sync.as_dict()
        if self.member_sync_error:
            data["member_sync_error"] = self.member_sync_error
        return data


def _carry_task_ids(template_tasks, current_tasks):
    """Template tasks without an id take the id of the current task with the same label."""
    ids_by_label = {task.get("label"): task.get("id") for task in current_tasks or [] if task.get("id")}
    carried = []
    for task in template_tasks or []:
        if isinstance(task, dict) and not task.get("id") and ids_by_label.get(task.get("label")):
            task = dict(task, id=ids_by_label[task.get("label")])
        carried.append(task)
    return carried


def _week_sort_key(week):
    # Week -1 holds post-program content and sorts last
    number = week.get("week_number")
    if number == -1:
        return (1, 0)
    return (0, number if isinstance(number, int) else 0)


def sync_template_to_cohort(program, cohort, options=None, week_numbers: Optional[List[int]] = None,
                            distribute_after_sync=False):
    """
    Sync a group program's template weeks into the cohort's instance.

    Instance weeks are matched by week number. Matched weeks get the template
    content allowed by ``options`` while keeping their days and day range;
    template weeks the instance lacks are added as fresh copies. With
    ``distribute_after_sync`` every synced week's tasks are laid out over its
    days and pushed to members once the instance is saved.

    Returns:
        CohortTemplateSyncResult
    """
    if program.program_type != "group":
        raise TemplateSyncNotAllowed("Template sync to cohort is only available for group programs")
    options = options or TemplateSyncOptions()
    instance = resolve_cohort_instance(program, cohort)
    result = CohortTemplateSyncResult(instance_id=instance.pk, distributed=bool(distribute_after_sync))

    template_weeks = get_template_weeks(program)
    with transaction.atomic():
        instance = ProgramInstance.objects.select_for_update().get(pk=instance.pk)
        fresh_weeks = build_instance_weeks(
            template_weeks,
            start_date=instance.start_date,
            include_weekends=instance.include_weekends,
            length_days=program.length_days,
        )
        weeks = copy.deepcopy(instance.weeks or [])
        positions = {week.get("week_number"): index for index, week in enumerate(weeks)}
        wanted = set(week_numbers) if week_numbers else None
        synced = []

        for template_week, fresh_week in zip(template_weeks, fresh_weeks):
            number = fresh_week["week_number"]
            if wanted is not None and number not in wanted:
                continue

            index = positions.get(number)
            if index is None:
                weeks.append(fresh_week)
                synced.append(fresh_week)
                result.weeks_created += 1
                continue

            week = weeks[index]
            week["template_week_number"] = template_week.get("week_number")
            template_week = dict(
                template_week,
                week_number=number,
                weekly_tasks=_carry_task_ids(template_week.get("weekly_tasks"), week.get("weekly_tasks")),
            )
            values = build_week_update(template_week, week, options,
                                       positional_fields=INSTANCE_POSITIONAL_FIELDS)
            week.update(values)
            week["has_local_changes"] = False
            synced.append(week)
            result.weeks_updated += 1

        if distribute_after_sync:
            for week in synced:
                policy = normalize_distribution(week.get("distribution") or program.task_distribution)
                week.update(distribute_week_tasks(week, week.get("weekly_tasks") or [], policy))

        weeks.sort(key=_week_sort_key)
        instance.weeks = weeks
        instance.save(update_fields=["weeks", "updated_at"])

    logger.info(
        f"Synced template into instance {instance.pk} for cohort {cohort.pk}: "
        f"{result.weeks_updated} updated, {result.weeks_created} new week(s)"
    )

    if distribute_after_sync:
        days = [day for week in synced for day in (week.get("days") or [])]
        try:
            result.member_sync = sync_days_to_members(instance, days)
        except Exception as exc:
            logger.exception(f"Member sync failed after template sync for instance {instance.pk}")
            result.member_sync_error = str(exc)
    return result

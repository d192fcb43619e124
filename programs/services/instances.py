"""
Program instance resolution.

An instance is the mutable copy of a program's weeks for one cohort (or one
individual enrollment). It is built lazily the first time a coach opens the
cohort's week content.
"""
import logging

from core.services import ProgramCalendarService
from programs.exceptions import CohortNotFound, EnrollmentNotFound, InstanceNotFound, ProgramNotFound
from programs.models import Program, ProgramCohort, ProgramEnrollment, ProgramInstance
from .task_templates import new_template_id, normalize_task_templates

logger = logging.getLogger(__name__)


def get_program(program_id, organization):
    """Program owned by ``organization`` or ProgramNotFound."""
    try:
        return Program.objects.get(pk=program_id, organization=organization)
    except (Program.DoesNotExist, ValueError, TypeError):
        raise ProgramNotFound()


def get_cohort(program, cohort_id):
    """Cohort belonging to ``program`` or CohortNotFound."""
    try:
        return ProgramCohort.objects.get(pk=cohort_id, program=program)
    except (ProgramCohort.DoesNotExist, ValueError, TypeError):
        raise CohortNotFound()


def get_instance(instance_id, organization):
    try:
        return ProgramInstance.objects.select_related("program", "cohort", "enrollment").get(
            pk=instance_id, organization=organization
        )
    except (ProgramInstance.DoesNotExist, ValueError, TypeError):
        raise InstanceNotFound()


def get_template_weeks(program):
    """
    Template weeks for ``program`` as dicts.

    Embedded ``program.weeks`` win; programs without them fall back to their
    ProgramWeek rows ordered by week number.
    """
    if isinstance(program.weeks, list) and program.weeks:
        return [dict(week) for week in program.weeks]
    return [week.as_template() for week in program.template_weeks.order_by("week_number")]


def _build_days(day_range, start_date, include_weekends):
    if day_range is None:
        return []
    start, end = day_range
    days = []
    for day_index in range(start, end + 1):
        calendar_date = None
        if start_date:
            calendar_date = ProgramCalendarService.format_date(
                ProgramCalendarService.day_index_to_date(start_date, day_index, include_weekends)
            )
        days.append({
            "day_index": day_index,
            "calendar_date": calendar_date,
            "tasks": [],
            "habits": [],
        })
    return days


def build_instance_weeks(template_weeks, *, start_date=None, include_weekends=True, length_days=None):
    """
    Materialise template weeks into instance weeks.

    Week N (by position) covers a contiguous block of days-per-week day
    indices. Days start empty; the week's own task templates are copied with
    ids assigned.
    """
    weeks = []
    for position, template in enumerate(template_weeks):
        day_range = ProgramCalendarService.week_day_range(position, include_weekends, length_days)
        week_number = template.get("week_number")
        weeks.append({
            "id": template.get("id") or new_template_id(),
            "week_number": week_number if week_number is not None else position + 1,
            "template_week_number": week_number,
            "module_id": template.get("module_id"),
            "name": template.get("name"),
            "theme": template.get("theme"),
            "description": template.get("description"),
            "weekly_tasks": normalize_task_templates(template.get("weekly_tasks") or []),
            "weekly_habits": list(template.get("weekly_habits") or []),
            "weekly_prompt": template.get("weekly_prompt"),
            "distribution": template.get("distribution"),
            "start_day_index": day_range[0] if day_range else None,
            "end_day_index": day_range[1] if day_range else None,
            "days": _build_days(day_range, start_date, include_weekends),
            "current_focus": template.get("current_focus"),
            "notes": template.get("notes"),
            "manual_notes": template.get("manual_notes"),
            "coach_recording_url": template.get("coach_recording_url"),
            "coach_recording_notes": template.get("coach_recording_notes"),
            "linked_summary_ids": list(template.get("linked_summary_ids") or []),
            "linked_call_event_ids": list(template.get("linked_call_event_ids") or []),
            "has_local_changes": False,
        })
    return weeks


def resolve_cohort_instance(program, cohort):
    """
    Return the single instance for ``(program, cohort)``, creating it on first use.

    Creation goes through get_or_create against the per-cohort unique
    constraint, so two concurrent first accesses end up sharing one row.
    """
    if cohort.program_id != program.pk:
        raise CohortNotFound()

    existing = ProgramInstance.objects.filter(program=program, cohort=cohort).first()
    if existing:
        return existing

    template_weeks = get_template_weeks(program)
    weeks = build_instance_weeks(
        template_weeks,
        start_date=cohort.start_date,
        include_weekends=program.include_weekends,
        length_days=program.length_days,
    )
    instance, created = ProgramInstance.objects.get_or_create(
        program=program,
        cohort=cohort,
        defaults={
            "organization_id": program.organization_id,
            "instance_type": "cohort",
            "start_date": cohort.start_date,
            "end_date": cohort.end_date,
            "include_weekends": program.include_weekends,
            "weeks": weeks,
        },
    )
    if created:
        logger.info(f"Created cohort instance {instance.pk} for program {program.pk}, cohort {cohort.pk} ({len(weeks)} weeks)")
    else:
        logger.info(f"Cohort instance {instance.pk} was created concurrently for cohort {cohort.pk}")
    return instance


def resolve_enrollment_instance(program, enrollment):
    """Individual-program counterpart of resolve_cohort_instance, keyed by enrollment."""
    if enrollment.program_id != program.pk:
        raise EnrollmentNotFound()

    existing = ProgramInstance.objects.filter(program=program, enrollment=enrollment).first()
    if existing:
        return existing

    weeks = build_instance_weeks(
        get_template_weeks(program),
        start_date=enrollment.started_at,
        include_weekends=program.include_weekends,
        length_days=program.length_days,
    )
    instance, created = ProgramInstance.objects.get_or_create(
        program=program,
        enrollment=enrollment,
        defaults={
            "organization_id": program.organization_id,
            "instance_type": "individual",
            "start_date": enrollment.started_at,
            "include_weekends": program.include_weekends,
            "weeks": weeks,
        },
    )
    if created:
        logger.info(f"Created enrollment instance {instance.pk} for enrollment {enrollment.pk}")
    return instance


def get_enrollment(program, enrollment_id):
    try:
        return ProgramEnrollment.objects.get(pk=enrollment_id, program=program)
    except (ProgramEnrollment.DoesNotExist, ValueError, TypeError):
        raise EnrollmentNotFound()

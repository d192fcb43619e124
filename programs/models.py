from django.conf import settings
from django.db import models
from django.db.models import Q
from django.core.exceptions import ValidationError

from accounts.models import Organization


def default_length_days():
    return getattr(settings, 'PROGRAM_DEFAULT_LENGTH_DAYS', 28)


class Program(models.Model):
    """
    Coach-authored content template. Group programs run as cohorts,
    individual programs are materialised per enrollment.
    """
    TYPE_CHOICES = [
        ("group", "Group"),
        ("individual", "Individual"),
    ]
    DISTRIBUTION_CHOICES = [
        ("spread", "Spread across the week"),
        ("repeat-daily", "Repeat daily"),
        ("first_day", "First day of the week"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="programs")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    program_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="group")
    length_days = models.PositiveIntegerField(default=default_length_days)
    include_weekends = models.BooleanField(default=True, help_text="If disabled, program days only fall on Mon-Fri")
    task_distribution = models.CharField(max_length=20, choices=DISTRIBUTION_CHOICES, default="spread",
                                         help_text="Fallback distribution for weeks that don't set their own")
    default_habits = models.JSONField(default=list, blank=True)
    squad_capacity = models.PositiveIntegerField(null=True, blank=True, help_text="Max members per squad (group programs)")
    weeks = models.JSONField(default=list, blank=True,
                             help_text="Embedded template weeks. When empty, ProgramWeek rows are used.")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "programs"
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def is_group(self):
        return self.program_type == "group"

    def clean(self):
        if self.program_type == "individual" and self.squad_capacity:
            raise ValidationError({'squad_capacity': 'Squad capacity only applies to group programs.'})


class ProgramWeek(models.Model):
    """Template week stored as its own row (older programs predate embedded weeks)."""
    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name="template_weeks")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="+")
    week_number = models.IntegerField()
    module_id = models.CharField(max_length=64, blank=True, default="")
    order = models.IntegerField(default=0)
    start_day_index = models.IntegerField(null=True, blank=True)
    end_day_index = models.IntegerField(null=True, blank=True)
    name = models.CharField(max_length=200, blank=True, default="")
    theme = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")
    weekly_prompt = models.TextField(blank=True, default="")
    weekly_tasks = models.JSONField(default=list, blank=True)
    weekly_habits = models.JSONField(default=list, blank=True)
    current_focus = models.JSONField(default=list, blank=True)
    notes = models.JSONField(default=list, blank=True)
    manual_notes = models.TextField(blank=True, default="")
    distribution = models.CharField(max_length=20, blank=True, default="")
    coach_recording_url = models.URLField(blank=True, default="")
    coach_recording_notes = models.TextField(blank=True, default="")
    linked_summary_ids = models.JSONField(default=list, blank=True)
    linked_call_event_ids = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "program_weeks"
        ordering = ["week_number"]
        unique_together = ("program", "week_number")

    def __str__(self):
        return f"{self.program.name} - Week {self.week_number}"

    def as_template(self):
        """Dict form matching an embedded ``Program.weeks`` entry."""
        return {
            "id": str(self.pk),
            "week_number": self.week_number,
            "module_id": self.module_id or None,
            "order": self.order,
            "start_day_index": self.start_day_index,
            "end_day_index": self.end_day_index,
            "name": self.name or None,
            "theme": self.theme or None,
            "description": self.description or None,
            "weekly_prompt": self.weekly_prompt or None,
            "weekly_tasks": list(self.weekly_tasks or []),
            "weekly_habits": list(self.weekly_habits or []),
            "current_focus": list(self.current_focus or []),
            "notes": list(self.notes or []),
            "manual_notes": self.manual_notes or None,
            "distribution": self.distribution or None,
            "coach_recording_url": self.coach_recording_url or None,
            "coach_recording_notes": self.coach_recording_notes or None,
            "linked_summary_ids": list(self.linked_summary_ids or []),
            "linked_call_event_ids": list(self.linked_call_event_ids or []),
        }


class ProgramCohort(models.Model):
    """A scheduled run of a group program"""
    STATUS_CHOICES = [
        ("upcoming", "Upcoming"),
        ("active", "Active"),
        ("completed", "Completed"),
        ("archived", "Archived"),
    ]

    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name="cohorts")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="+")
    name = models.CharField(max_length=200)
    start_date = models.DateField()
    end_date = models.DateField()
    enrollment_open = models.BooleanField(default=True)
    max_enrollment = models.PositiveIntegerField(null=True, blank=True)
    current_enrollment = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="upcoming")
    grace_period_end_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "program_cohorts"
        ordering = ["start_date", "created_at"]

    def __str__(self):
        return f"{self.program.name} - {self.name}"

    @property
    def is_full(self):
        return self.max_enrollment is not None and self.current_enrollment >= self.max_enrollment

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': 'End date must be after start date.'})


class ProgramEnrollment(models.Model):
    STATUS_CHOICES = [
        ("upcoming", "Upcoming"),
        ("active", "Active"),
        ("completed", "Completed"),
        ("stopped", "Stopped"),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="program_enrollments")
    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name="enrollments")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="+")
    cohort = models.ForeignKey(ProgramCohort, on_delete=models.SET_NULL, null=True, blank=True, related_name="enrollments")
    squad_id = models.CharField(max_length=64, blank=True, default="")

    # Payment
    amount_paid = models.PositiveIntegerField(default=0, help_text="Amount in cents")
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_reference = models.CharField(max_length=120, blank=True, default="")

    # Progress
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="upcoming")
    started_at = models.DateField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    stopped_at = models.DateTimeField(null=True, blank=True)
    last_assigned_day_index = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "program_enrollments"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["cohort", "status"], name="enrollment_cohort_status_idx"),
            models.Index(fields=["program", "status"], name="enrollment_program_status_idx"),
        ]

    def __str__(self):
        return f"{self.user} in {self.program.name} ({self.status})"


class ProgramInstance(models.Model):
    """
    Mutable materialisation of a program's week/day/task structure for one
    cohort (group) or one enrollment (individual).

    ``weeks`` is rewritten as a whole on every edit.
    """
    TYPE_CHOICES = [
        ("cohort", "Cohort"),
        ("individual", "Individual"),
    ]

    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name="instances")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="+")
    instance_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    cohort = models.ForeignKey(ProgramCohort, on_delete=models.CASCADE, null=True, blank=True, related_name="instances")
    enrollment = models.ForeignKey(ProgramEnrollment, on_delete=models.CASCADE, null=True, blank=True, related_name="instances")
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    include_weekends = models.BooleanField(default=True)
    weeks = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "program_instances"
        constraints = [
            models.UniqueConstraint(
                fields=["program", "cohort"],
                condition=Q(cohort__isnull=False),
                name="unique_instance_per_cohort",
            ),
            models.UniqueConstraint(
                fields=["program", "enrollment"],
                condition=Q(enrollment__isnull=False),
                name="unique_instance_per_enrollment",
            ),
        ]

    def __str__(self):
        target = self.cohort or self.enrollment
        return f"{self.program.name} instance ({target})"


class ClientProgramWeek(models.Model):
    """A client's own editable copy of a template week (individual programs)."""
    enrollment = models.ForeignKey(ProgramEnrollment, on_delete=models.CASCADE, related_name="client_weeks")
    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name="+")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="+")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="client_program_weeks")
    program_week_id = models.CharField(max_length=64, help_text="Id of the template week this copy follows")

    # Positional
    week_number = models.IntegerField()
    module_id = models.CharField(max_length=64, null=True, blank=True)
    order = models.IntegerField(null=True, blank=True)
    start_day_index = models.IntegerField(null=True, blank=True)
    end_day_index = models.IntegerField(null=True, blank=True)

    # Content
    name = models.CharField(max_length=200, null=True, blank=True)
    theme = models.CharField(max_length=200, null=True, blank=True)
    description = models.TextField(null=True, blank=True)
    weekly_prompt = models.TextField(null=True, blank=True)
    weekly_tasks = models.JSONField(null=True, blank=True)
    weekly_habits = models.JSONField(null=True, blank=True)
    current_focus = models.JSONField(null=True, blank=True)
    notes = models.JSONField(null=True, blank=True)
    distribution = models.CharField(max_length=20, null=True, blank=True)

    # Client-specific
    linked_summary_ids = models.JSONField(default=list, blank=True)
    linked_call_event_ids = models.JSONField(default=list, blank=True)
    coach_recording_url = models.URLField(null=True, blank=True)
    coach_recording_notes = models.TextField(null=True, blank=True)
    manual_notes = models.TextField(null=True, blank=True)

    # Sync tracking
    has_local_changes = models.BooleanField(default=False)
    last_synced_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "client_program_weeks"
        ordering = ["enrollment", "week_number"]
        unique_together = ("enrollment", "program_week_id")

    def __str__(self):
        return f"{self.user} - Week {self.week_number}"

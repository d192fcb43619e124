from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from accounts.models import Organization


class Task(models.Model):
    """
    A user's task for one day.

    Program tasks point back at the instance task template they were created
    from (instance + day_index + instance_task_id) so re-syncs update them in
    place instead of recreating them.
    """
    SOURCE_CHOICES = [
        ("user", "User"),
        ("program", "Program"),
    ]
    TYPE_CHOICES = [
        ("task", "Task"),
        ("habit", "Habit"),
        ("learning", "Learning"),
        ("admin", "Admin"),
    ]
    LIST_CHOICES = [
        ("focus", "Daily Focus"),
        ("backlog", "Backlog"),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="tasks")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="+")
    instance = models.ForeignKey("programs.ProgramInstance", on_delete=models.CASCADE, null=True, blank=True, related_name="member_tasks")
    instance_task_id = models.CharField(max_length=64, blank=True, default="")
    day_index = models.IntegerField(null=True, blank=True, help_text="Program day this task came from")

    label = models.CharField(max_length=255)
    is_primary = models.BooleanField(default=False, help_text="Primary tasks go to Daily Focus")
    task_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="task")
    estimated_minutes = models.PositiveIntegerField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    tag = models.CharField(max_length=60, null=True, blank=True)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default="user")
    list_type = models.CharField(max_length=20, choices=LIST_CHOICES, default="focus")
    date = models.DateField(null=True, blank=True)

    completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tasks"
        ordering = ["date", "-is_primary", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "instance", "day_index", "instance_task_id"],
                condition=Q(instance__isnull=False),
                name="unique_task_per_instance_template",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "instance", "day_index"], name="task_user_instance_day_idx"),
            models.Index(fields=["user", "date"], name="task_user_date_idx"),
        ]

    def __str__(self):
        return f"{self.label} ({self.user})"

    def set_completed(self, completed):
        """Toggle completion, stamping or clearing completed_at."""
        self.completed = bool(completed)
        self.completed_at = timezone.now() if self.completed else None
        self.save(update_fields=["completed", "completed_at", "updated_at"])

from django.contrib import admin
from .models import Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("label", "user", "date", "day_index", "source", "list_type", "is_primary", "completed")
    list_filter = ("source", "list_type", "completed", "task_type", "organization")
    search_fields = ("label", "user__email", "instance_task_id")
    date_hierarchy = "date"
    raw_id_fields = ("user", "instance")
    readonly_fields = ("instance_task_id", "completed_at", "created_at", "updated_at")
    fieldsets = (
        (None, {
            "fields": ("user", "organization", "label", "task_type", "is_primary", "list_type")
        }),
        ("Details", {
            "fields": ("estimated_minutes", "notes", "tag", "date")
        }),
        ("Program Link", {
            "fields": ("source", "instance", "day_index", "instance_task_id"),
            "description": "Program tasks are kept in step with their instance template by member sync. Edits here are overwritten on the next sync."
        }),
        ("Completion", {
            "fields": ("completed", "completed_at")
        }),
        ("Timestamps", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",)
        }),
    )

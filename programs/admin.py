from django.contrib import admin
from .models import Program, ProgramWeek, ProgramCohort, ProgramEnrollment, ProgramInstance, ClientProgramWeek
from .services.member_sync import sync_instance_to_members


class ProgramWeekInline(admin.TabularInline):
    model = ProgramWeek
    extra = 0
    fields = ("week_number", "name", "theme", "distribution")
    ordering = ("week_number",)


@admin.register(Program)
class ProgramAdmin(admin.ModelAdmin):
    list_display = ("name", "organization", "program_type", "length_days", "include_weekends", "task_distribution", "is_active")
    list_filter = ("program_type", "is_active", "include_weekends", "organization")
    search_fields = ("name", "description")
    inlines = [ProgramWeekInline]
    fieldsets = (
        (None, {
            "fields": ("organization", "name", "description", "program_type", "is_active")
        }),
        ("Schedule", {
            "fields": ("length_days", "include_weekends", "task_distribution", "squad_capacity")
        }),
        ("Template Content", {
            "fields": ("default_habits", "weeks"),
            "description": "Embedded weeks take precedence over the week rows below."
        }),
    )


@admin.register(ProgramCohort)
class ProgramCohortAdmin(admin.ModelAdmin):
    list_display = ("name", "program", "start_date", "end_date", "status", "current_enrollment", "max_enrollment", "is_full")
    list_filter = ("status", "enrollment_open", "program")
    search_fields = ("name", "program__name")
    date_hierarchy = "start_date"

    def is_full(self, obj):
        return obj.is_full
    is_full.boolean = True
    is_full.short_description = "Full"


@admin.register(ProgramEnrollment)
class ProgramEnrollmentAdmin(admin.ModelAdmin):
    list_display = ("user", "program", "cohort", "status", "started_at", "amount_paid")
    list_filter = ("status", "program")
    search_fields = ("user__email", "program__name")
    raw_id_fields = ("user", "cohort")


@admin.register(ProgramInstance)
class ProgramInstanceAdmin(admin.ModelAdmin):
    list_display = ("program", "instance_type", "cohort", "enrollment", "start_date", "week_count", "updated_at")
    list_filter = ("instance_type", "program")
    raw_id_fields = ("cohort", "enrollment")
    readonly_fields = ("created_at", "updated_at")
    actions = ["resync_member_tasks"]

    def week_count(self, obj):
        return len(obj.weeks or [])
    week_count.short_description = "Weeks"

    def resync_member_tasks(self, request, queryset):
        """Admin action to bring every member's tasks in line with the instance"""
        total = 0
        for instance in queryset:
            counts = sync_instance_to_members(instance)
            total += counts.changed
        self.message_user(request, f'Resynced {queryset.count()} instance(s), {total} task change(s).')
    resync_member_tasks.short_description = 'Resync member tasks'


@admin.register(ClientProgramWeek)
class ClientProgramWeekAdmin(admin.ModelAdmin):
    list_display = ("user", "program", "week_number", "has_local_changes", "last_synced_at")
    list_filter = ("has_local_changes", "program")
    search_fields = ("user__email", "name")
    raw_id_fields = ("enrollment", "user")

from rest_framework import serializers

from programs.services.distribution import DISTRIBUTION_ALIASES
from tracker.models import Task


class TaskTemplateSerializer(serializers.Serializer):
    """
    A task template inside a week or day. Omitted ids are assigned on save.
    """
    id = serializers.CharField(required=False, allow_blank=True, max_length=64)
    label = serializers.CharField(max_length=255, help_text="Text shown on the member's task.")
    type = serializers.ChoiceField(choices=[c[0] for c in Task.TYPE_CHOICES], required=False)
    is_primary = serializers.BooleanField(required=False, help_text="Primary tasks land in Daily Focus.")
    estimated_minutes = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    tag = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=60)
    day_tag = serializers.JSONField(
        required=False, allow_null=True,
        help_text='"daily", "spread", "auto", or a 1-based day of the week (number or list of numbers).',
    )


class WeekContentUpdateSerializer(serializers.Serializer):
    """
    Partial update of one cohort week. Only keys sent are applied; blank
    strings clear a field.
    """
    name = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=200)
    theme = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    weekly_prompt = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    manual_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    coach_recording_url = serializers.URLField(required=False, allow_blank=True, allow_null=True)
    coach_recording_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    linked_summary_ids = serializers.ListField(child=serializers.CharField(), required=False, allow_null=True)
    linked_call_event_ids = serializers.ListField(child=serializers.CharField(), required=False, allow_null=True)
    weekly_tasks = TaskTemplateSerializer(many=True, required=False)
    weekly_habits = serializers.ListField(child=serializers.JSONField(), required=False, allow_null=True)
    distribution = serializers.ChoiceField(choices=list(DISTRIBUTION_ALIASES), required=False, allow_null=True)
    distribute_tasks_now = serializers.BooleanField(
        required=False, help_text="Fan the week's tasks out to its days and push them to members."
    )


class DayUpdateSerializer(serializers.Serializer):
    tasks = TaskTemplateSerializer(many=True, required=False)
    habits = serializers.ListField(child=serializers.JSONField(), required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide tasks and/or habits')
        return attrs


class SyncTemplateRequestSerializer(serializers.Serializer):
    enrollment_ids = serializers.JSONField(help_text='List of enrollment ids, or "all".')
    sync_options = serializers.DictField(required=False, default=dict)
    week_numbers = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)

    def validate_enrollment_ids(self, value):
        if value == 'all':
            return value
        if isinstance(value, list) and value:
            return value
        raise serializers.ValidationError('enrollment_ids is required (list or "all")')


class CohortSyncTemplateRequestSerializer(serializers.Serializer):
    week_numbers = serializers.ListField(child=serializers.IntegerField(), required=False)
    sync_options = serializers.DictField(required=False, default=dict)
    distribute_after_sync = serializers.BooleanField(
        required=False, default=False, help_text="Lay synced weeks' tasks out over their days and push them to members."
    )


class SyncHabitsRequestSerializer(serializers.Serializer):
    cohort_id = serializers.IntegerField(required=False, help_text="Only sync this cohort's instance.")
    overwrite = serializers.BooleanField(
        required=False, default=False, help_text="Replace habits that are already set instead of filling empty ones."
    )


class TaskSerializer(serializers.ModelSerializer):
    class Meta:
        model = Task
        fields = [
            'id', 'label', 'is_primary', 'task_type', 'estimated_minutes', 'notes', 'tag',
            'source', 'list_type', 'date', 'day_index', 'instance', 'instance_task_id',
            'completed', 'completed_at', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'source', 'day_index', 'instance', 'instance_task_id', 'completed_at',
            'created_at', 'updated_at',
        ]

    def update(self, instance, validated_data):
        # Completion goes through set_completed so completed_at stays in step
        completed = validated_data.pop('completed', None)
        instance = super().update(instance, validated_data)
        if completed is not None and completed != instance.completed:
            instance.set_completed(completed)
        return instance

from .distribution import distribute_week_tasks, normalize_distribution, spread_counts
from .instances import resolve_cohort_instance, resolve_enrollment_instance
from .habits import normalize_habit_templates, sync_program_habits
from .member_sync import SyncCounts, sync_day_tasks_to_user, sync_days_to_members, sync_instance_to_members
from .template_sync import TemplateSyncOptions, sync_template_to_clients, sync_template_to_cohort
from .week_content import get_week_content, update_instance_day, update_week_content

__all__ = [
    'distribute_week_tasks',
    'normalize_distribution',
    'spread_counts',
    'resolve_cohort_instance',
    'resolve_enrollment_instance',
    'normalize_habit_templates',
    'sync_program_habits',
    'SyncCounts',
    'sync_day_tasks_to_user',
    'sync_days_to_members',
    'sync_instance_to_members',
    'TemplateSyncOptions',
    'sync_template_to_clients',
    'sync_template_to_cohort',
    'get_week_content',
    'update_instance_day',
    'update_week_content',
]

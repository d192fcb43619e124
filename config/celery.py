"""
Celery configuration for background task processing.
"""
import os
from celery import Celery
from kombu import Queue

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('cohortcoach')

# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django apps.
app.autodiscover_tasks()


# Member resyncs touch many rows; keep them off the default queue
app.conf.task_routes = {
    'programs.tasks.resync_cohort_member_tasks': {'queue': 'member_sync'},
}

app.conf.task_queues = (
    Queue('celery'),
    Queue('member_sync'),
)

app.conf.worker_prefetch_multiplier = 1
app.conf.task_acks_late = True

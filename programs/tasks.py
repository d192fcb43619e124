"""
Celery tasks for re-running member task synchronization in the background.
"""
import logging

from celery import shared_task

from core.utils.redis_lock import cohort_sync_lock
from .models import ProgramInstance
from .services.member_sync import sync_instance_to_members

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def resync_cohort_member_tasks(self, instance_id):
    """
    Reconcile every member's tasks against every day of an instance.

    Recovers members left behind by a partially failed sync. Only one resync
    per instance runs at a time.

    Args:
        instance_id: ProgramInstance primary key

    Returns:
        dict: {'status': 'success'|'skipped'|'error', ...counts}
    """
    try:
        with cohort_sync_lock(instance_id) as acquired:
            if not acquired:
                logger.info(f"Resync already in progress for instance {instance_id}, skipping")
                return {'status': 'skipped', 'reason': 'in_progress'}

            instance = ProgramInstance.objects.get(pk=instance_id)
            counts = sync_instance_to_members(instance)
    except ProgramInstance.DoesNotExist:
        logger.error(f"Instance {instance_id} no longer exists, nothing to resync")
        return {'status': 'error', 'message': 'Instance not found'}
    except Exception as e:
        logger.error(f"Error resyncing member tasks for instance {instance_id}: {e}", exc_info=True)
        raise self.retry(exc=e, countdown=60)

    logger.info(f"Resynced instance {instance_id}: {counts.as_dict()}")
    return {'status': 'success', **counts.as_dict()}

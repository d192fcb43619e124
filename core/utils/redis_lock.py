import logging

from django.conf import settings
import redis

logger = logging.getLogger(__name__)


def get_redis_client():
    url = getattr(settings, 'REDIS_URL', None) or getattr(settings, 'CELERY_BROKER_URL', None) or 'redis://localhost:6379/0'
    return redis.from_url(url)


class RedisLock:
    """Simple context-manager for a redis lock (non-blocking acquire).

    Usage:
        with RedisLock(f'cohort-sync:{instance_id}', ttl=300) as acquired:
            if not acquired:
                return
            # do work

    With fail_open=True an unreachable Redis counts as acquired, so work
    still runs (unguarded) when the lock server is down.
    """
    def __init__(self, key, ttl=60, fail_open=False):
        self.key = f'lock:{key}'
        self.ttl = ttl
        self.fail_open = fail_open
        self._client = None
        self._owned = False
        self.acquired = False

    def __enter__(self):
        self._client = get_redis_client()
        try:
            self._owned = bool(self._client.set(self.key, '1', nx=True, ex=self.ttl))
            self.acquired = self._owned
        except redis.RedisError as exc:
            logger.warning(f"Redis unavailable for lock {self.key}: {exc}")
            self.acquired = self.fail_open
        return self.acquired

    def __exit__(self, exc_type, exc, tb):
        if not self._owned:
            return
        try:
            self._client.delete(self.key)
        except redis.RedisError as exc:
            logger.warning(f"Failed to release lock {self.key}, it expires in {self.ttl}s: {exc}")


def cohort_sync_lock(instance_id):
    """Lock guarding a full member resync of one program instance."""
    return RedisLock(
        f'cohort-sync:{instance_id}',
        ttl=getattr(settings, 'COHORT_SYNC_LOCK_TTL', 300),
        fail_open=True,
    )

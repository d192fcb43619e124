"""
Core utility modules shared across the programs and tracker apps.
"""

from . import redis_lock

__all__ = [
    'redis_lock',
]

"""Background workers for reindexing.

Tasks run in Celery workers (or inline when CELERY_TASK_ALWAYS_EAGER is set).
Each run holds a ReindexGuard lock for its scope so concurrent requests for
the same scope collapse into one run.
"""

from .base import ReindexGuard, get_redis_client
from .celery_app import celery_app

__all__ = [
    "ReindexGuard",
    "celery_app",
    "get_redis_client",
]

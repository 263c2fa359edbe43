"""Reindex Worker - background catalog-wide and per-type reindexing.

Tasks return a JSON-serializable dict; the Celery task id doubles as the
request id on every log line the run produces.
"""

import logging
import time
from typing import Any, Callable, Dict

from celery import Task

from ..config import get_settings
from ..database import get_db_session
from ..dependencies import build_indexer
from ..models import EntityType
from ..observability.metrics import reindex_runs_total
from ..observability.request_id import bound_request_id
from ..services.indexing import Indexer
from .base import ReindexGuard, get_redis_client
from .celery_app import celery_app

logger = logging.getLogger(__name__)

SCOPE_ALL = "all"


def _run_reindex(task: Task, scope: str, work: Callable[[Indexer], Dict[str, int]]) -> Dict[str, Any]:
    with bound_request_id(task.request.id):
        guard = ReindexGuard(get_redis_client(), ttl_seconds=get_settings().REINDEX_LOCK_TTL_SECONDS)

        if not guard.acquire(scope):
            logger.info("Reindex of %s already running, skipping", scope, extra={"scope": scope})
            reindex_runs_total.labels(scope=scope, status="skipped").inc()
            return {"status": "skipped", "scope": scope, "reason": "reindex already running"}

        start = time.perf_counter()
        try:
            with get_db_session() as session:
                counts = work(build_indexer(session))
        except Exception:
            reindex_runs_total.labels(scope=scope, status="failed").inc()
            logger.exception("Reindex of %s failed", scope, extra={"scope": scope})
            raise
        finally:
            guard.release(scope)

        duration_ms = int((time.perf_counter() - start) * 1000)
        reindex_runs_total.labels(scope=scope, status="completed").inc()
        logger.info("Reindex of %s completed in %d ms", scope, duration_ms, extra={"scope": scope})

        return {
            "status": "completed",
            "scope": scope,
            "counts": counts,
            "total": sum(counts.values()),
            "duration_ms": duration_ms,
        }


@celery_app.task(bind=True, name="smartsearch.reindex_all")
def reindex_all_task(self) -> Dict[str, Any]:
    """Reindex every item, shop and category.

    Example:
        >>> result = reindex_all_task.delay()
        >>> result.id  # operator handle, see GET /api/search/admin/reindex/{task_id}
    """
    return _run_reindex(self, SCOPE_ALL, lambda indexer: indexer.reindex_all().counts)


@celery_app.task(bind=True, name="smartsearch.reindex_type")
def reindex_type_task(self, entity_type: str) -> Dict[str, Any]:
    """Reindex every entity of one type.

    Args:
        entity_type: ITEM, SHOP or CATEGORY

    Raises:
        ValueError: Unknown entity type
    """
    entity_type = EntityType(entity_type)
    return _run_reindex(
        self,
        entity_type.value,
        lambda indexer: {entity_type.value: indexer.index_all_of_type(entity_type)},
    )

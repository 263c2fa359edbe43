"""Component health checks behind /health and /ready.

The database is a hard dependency. Redis (reindex locks) and the embedding
provider (semantic path) are soft: when they are missing search still
answers, through the keyword fallback or without single-flight locks, so
they can only degrade the overall status.
"""

import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import redis
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..config import get_settings
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def _timed(check: Callable[[], object]) -> float:
    start = time.perf_counter()
    check()
    return round((time.perf_counter() - start) * 1000, 2)


def check_database_health(db: Session) -> ComponentHealth:
    try:
        latency_ms = _timed(lambda: db.execute(text("SELECT 1")))
    except Exception as e:
        logger.error("Database health check failed: %s", e, exc_info=True)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Database error: {e}")
    return ComponentHealth(status=HealthStatus.HEALTHY, message="Database connection OK", latency_ms=latency_ms)


def check_redis_health() -> ComponentHealth:
    try:
        client = redis.from_url(get_settings().REDIS_URL, decode_responses=True, socket_connect_timeout=1)
        latency_ms = _timed(client.ping)
    except Exception as e:
        logger.warning("Redis health check failed: %s", e)
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            message=f"Redis error: {e}; reindex locks are per process",
        )
    return ComponentHealth(status=HealthStatus.HEALTHY, message="Redis connection OK", latency_ms=latency_ms)


def check_embedding_provider_health() -> ComponentHealth:
    """Configuration check only; /api/search/test runs a live search."""
    if get_settings().OPENAI_API_KEY:
        return ComponentHealth(status=HealthStatus.HEALTHY, message="Embedding provider configured")
    return ComponentHealth(
        status=HealthStatus.DEGRADED,
        message="OPENAI_API_KEY not set, searches will use keyword fallback",
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    statuses = {c.status for c in components.values()}
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if statuses <= {HealthStatus.HEALTHY}:
        return HealthStatus.HEALTHY
    return HealthStatus.DEGRADED


def collect_health(db: Session) -> Dict[str, object]:
    """Run every check and build the /health payload."""
    components = {
        "database": check_database_health(db),
        "redis": check_redis_health(),
        "embedding_provider": check_embedding_provider_health(),
    }
    return {
        "status": get_overall_health(components).value,
        "components": {name: component.to_dict() for name, component in components.items()},
    }

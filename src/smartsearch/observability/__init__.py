"""Observability: structured logging, request correlation, metrics and health checks."""

from .logging_config import configure_logging, get_logger
from .request_id import (
    bound_request_id,
    generate_request_id,
    get_request_id,
    normalize_request_id,
    set_request_id,
)
from .health import ComponentHealth, HealthStatus, collect_health
from .middleware import RequestIDMiddleware

__all__ = [
    "configure_logging",
    "get_logger",
    "bound_request_id",
    "generate_request_id",
    "get_request_id",
    "normalize_request_id",
    "set_request_id",
    "ComponentHealth",
    "HealthStatus",
    "collect_health",
    "RequestIDMiddleware",
]

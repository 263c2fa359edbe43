"""Logging setup: one stdout handler, JSON lines in production.

Every record carries the current request ID. Search and indexing code passes
entity context through ``extra=`` (entity_type, entity_id, scope, ...), and
the JSON formatter lifts those keys to top-level fields.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Iterable, Optional

from .request_id import NO_REQUEST_ID, get_request_id

SERVICE_NAME = "smartsearch"

CONTEXT_FIELDS = ("entity_type", "entity_id", "query", "task_id", "scope", "attempt")

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(request_id)s - %(name)s - %(message)s"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "openai", "celery.app.trace")


class RequestIDFilter(logging.Filter):
    """Stamp each record with the request ID bound in the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON object.

    The timestamp is the record's creation time in UTC. Context fields are
    included only when the log call supplied them.
    """

    def __init__(self, context_fields: Iterable[str] = CONTEXT_FIELDS):
        super().__init__()
        self.context_fields = tuple(context_fields)

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", NO_REQUEST_ID),
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        for field in self.context_fields:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = str(value)

        if record.exc_info:
            payload["error"] = str(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str = "INFO", json_format: bool = True, stream: Optional[object] = None) -> logging.Handler:
    """Replace the root handlers with one stream handler.

    Called from the FastAPI app at import time and from Celery's
    ``setup_logging`` signal in workers.

    Returns:
        The installed handler
    """
    log_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RequestIDFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

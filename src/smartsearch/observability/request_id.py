"""Request ID propagation for log correlation.

HTTP requests take the caller's X-Request-ID when it looks sane, otherwise a
fresh UUID. Celery tasks bind their task id with ``bound_request_id`` so a
reindex run's log lines share one id.
"""

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

REQUEST_ID_HEADER = "X-Request-ID"
NO_REQUEST_ID = "no-request-id"

# Letters, digits and a few separators, bounded so headers cannot flood logs
_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def normalize_request_id(candidate: Optional[str]) -> str:
    """Return candidate if it is a usable request ID, else a new one."""
    if candidate and _VALID_REQUEST_ID.fullmatch(candidate):
        return candidate
    return generate_request_id()


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST_ID


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


@contextmanager
def bound_request_id(request_id: Optional[str]) -> Iterator[str]:
    """Bind a request ID for the duration of a block, restoring the previous one.

    Example:
        with bound_request_id(task.request.id):
            logger.info("Reindex started")
    """
    value = request_id or generate_request_id()
    token = request_id_var.set(value)
    try:
        yield value
    finally:
        request_id_var.reset(token)

"""Shared utilities for background tasks.

ReindexGuard keeps at most one reindex run per scope (``all`` or a single
entity type) in flight across workers. It uses a Redis ``SET NX EX`` lock and
degrades to a per-process lock set when Redis is not reachable.
"""

import logging
import threading
import uuid
from typing import Optional

from redis import Redis

from ..config import get_settings

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "smartsearch:reindex:"


def get_redis_client() -> Optional[Redis]:
    """Get Redis client for reindex locks.

    Returns None if Redis is not available, allowing graceful degradation.
    """
    try:
        client = Redis.from_url(get_settings().REDIS_URL, decode_responses=True, socket_connect_timeout=1)
        client.ping()
        return client
    except Exception:
        return None


class ReindexGuard:
    """Single-flight lock per reindex scope.

    Usage:
        guard = ReindexGuard(get_redis_client(), ttl_seconds=3600)
        if guard.acquire("ITEM"):
            try:
                ...
            finally:
                guard.release("ITEM")
    """

    _local_locks: set[str] = set()
    _local_mutex = threading.Lock()

    def __init__(self, redis_client: Optional[Redis] = None, ttl_seconds: int = 3600):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self._tokens: dict[str, str] = {}

    def acquire(self, scope: str) -> bool:
        """Take the lock for scope. Returns False if it is already held."""
        if self.redis is not None:
            token = uuid.uuid4().hex
            try:
                acquired = bool(self.redis.set(LOCK_KEY_PREFIX + scope, token, nx=True, ex=self.ttl_seconds))
            except Exception as e:
                logger.warning("Redis unavailable for reindex lock, using local lock: %s", e, extra={"scope": scope})
                self.redis = None
            else:
                if acquired:
                    self._tokens[scope] = token
                return acquired

        with self._local_mutex:
            if scope in self._local_locks:
                return False
            self._local_locks.add(scope)
            return True

    def release(self, scope: str) -> None:
        """Release a lock taken by this guard. Locks held by others are left alone."""
        token = self._tokens.pop(scope, None)
        if token is not None and self.redis is not None:
            key = LOCK_KEY_PREFIX + scope
            try:
                if self.redis.get(key) == token:
                    self.redis.delete(key)
            except Exception as e:
                # The TTL frees the key eventually
                logger.warning("Failed to release reindex lock: %s", e, extra={"scope": scope})
            return

        with self._local_mutex:
            self._local_locks.discard(scope)

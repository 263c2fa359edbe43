"""Embedding Cache - process-wide memoization of text -> vector computations.

Entries are keyed by the SHA256 of the normalized text (stripped, lowercased),
expire a fixed time after they were written, and are evicted least recently
used first once the cache is full.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from ...observability.metrics import embedding_cache_requests_total, embedding_cache_size
from .text_generator import calculate_text_hash

logger = logging.getLogger(__name__)

Vector = list[float]


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache state for operational visibility."""
    size: int
    hit_rate: float
    hit_count: int
    miss_count: int


class EmbeddingCache:
    """Thread-safe LRU cache with expire-after-write TTL.

    Callers only ever go through get_or_compute(); there is no raw get/set.
    compute_fn runs outside the lock, so two threads missing on the same key
    at the same time may both compute. The second write simply replaces the
    first with an equal vector.

    Example:
        cache = EmbeddingCache(max_size=10_000, ttl_seconds=86_400)
        vector = cache.get_or_compute("Oak table", lambda: provider_call("Oak table"))
    """

    def __init__(
        self,
        max_size: int = 10_000,
        ttl_seconds: float = 86_400,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[float, tuple[float, ...]]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(text: str) -> str:
        """Cache key for text: hash of the stripped, lowercased form."""
        return calculate_text_hash(text.strip().lower())

    def get_or_compute(self, text: Optional[str], compute_fn: Callable[[], Optional[Vector]]) -> Optional[Vector]:
        """Return the cached vector for text, computing and storing it on a miss.

        Args:
            text: Text the vector belongs to
            compute_fn: Zero-argument callable producing the vector

        Returns:
            The vector, or None for blank text or when compute_fn returned None

        Raises:
            Whatever compute_fn raises; nothing is cached in that case
        """
        if text is None or not text.strip():
            return None

        key = self.make_key(text)

        cached = self._lookup(key)
        if cached is not None:
            logger.debug("Embedding cache HIT for text: %s", text[:50])
            return list(cached)

        logger.debug("Embedding cache MISS for text: %s", text[:50])
        vector = compute_fn()

        if vector is not None:
            self._store(key, vector)

        return vector

    def clear(self) -> None:
        """Invalidate every entry. Hit/miss counters are kept."""
        with self._lock:
            self._entries.clear()
        embedding_cache_size.set(0)
        logger.info("Embedding cache cleared")

    def stats(self) -> CacheStats:
        """Current size (expired entries excluded), hit rate and counters."""
        with self._lock:
            self._purge_expired()
            size = len(self._entries)
            hits, misses = self._hits, self._misses

        total = hits + misses
        return CacheStats(
            size=size,
            hit_rate=(hits / total) if total else 0.0,
            hit_count=hits,
            miss_count=misses,
        )

    def __len__(self) -> int:
        return self.stats().size

    def _lookup(self, key: str) -> Optional[tuple[float, ...]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                written_at, vector = entry
                if self._clock() - written_at < self.ttl_seconds:
                    self._entries.move_to_end(key)
                    self._hits += 1
                    embedding_cache_requests_total.labels(result="hit").inc()
                    return vector
                del self._entries[key]

            self._misses += 1
            embedding_cache_requests_total.labels(result="miss").inc()
            return None

    def _store(self, key: str, vector: Vector) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), tuple(vector))
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
            embedding_cache_size.set(len(self._entries))

    def _purge_expired(self) -> None:
        # Caller holds the lock
        now = self._clock()
        expired = [k for k, (written_at, _) in self._entries.items() if now - written_at >= self.ttl_seconds]
        for key in expired:
            del self._entries[key]


_cache: Optional[EmbeddingCache] = None
_cache_lock = threading.Lock()


def get_embedding_cache() -> EmbeddingCache:
    """Process-wide cache instance, created from settings on first use."""
    global _cache
    if _cache is None:
        with _cache_lock:
            if _cache is None:
                from ...config import get_settings

                settings = get_settings()
                _cache = EmbeddingCache(
                    max_size=settings.EMBEDDING_CACHE_MAX_SIZE,
                    ttl_seconds=settings.EMBEDDING_CACHE_TTL_SECONDS,
                )
                logger.info(
                    "Embedding cache initialized (max_size=%d, ttl=%ss)",
                    settings.EMBEDDING_CACHE_MAX_SIZE,
                    settings.EMBEDDING_CACHE_TTL_SECONDS,
                )
    return _cache


def reset_embedding_cache() -> None:
    """Drop the process-wide instance (application shutdown, tests)."""
    global _cache
    with _cache_lock:
        _cache = None

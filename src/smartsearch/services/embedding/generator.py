"""Embedding Generator - cache-checked, rate-limited, retrying embedding calls.

All embedding traffic in the service goes through EmbeddingGenerator.generate().
Callers never talk to the provider directly.
"""

import logging
import time
from typing import Callable, Optional

from ...domain.ai.ports import (
    EmbeddingProviderPort,
    EmbeddingAuthError,
    EmbeddingGenerationError,
    EmbeddingInvalidResponseError,
)
from ...observability.metrics import embedding_calls_total, embedding_latency_ms, embedding_tokens_total
from .cache import EmbeddingCache, get_embedding_cache
from .rate_limiter import RateLimiter
from .text_generator import (
    generate_item_text,
    generate_shop_text,
    generate_category_text,
    truncate_text_for_embedding,
)

logger = logging.getLogger(__name__)


class EmbeddingGenerator:
    """Turns text into a fixed-size vector.

    Pipeline per call: strip + truncate -> cache lookup -> (miss) rate limiter
    -> provider, retried with linear backoff. A returned vector always has
    exactly ``dimensions`` floats.

    Example:
        generator = EmbeddingGenerator.from_settings(provider)
        vector = generator.generate("Handmade ceramic mug")
    """

    generate_item_text = staticmethod(generate_item_text)
    generate_shop_text = staticmethod(generate_shop_text)
    generate_category_text = staticmethod(generate_category_text)

    def __init__(
        self,
        provider: EmbeddingProviderPort,
        cache: EmbeddingCache,
        rate_limiter: RateLimiter,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        max_input_chars: int = 8000,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.provider = provider
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.model = model
        self.dimensions = dimensions
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.max_input_chars = max_input_chars
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        provider: EmbeddingProviderPort,
        settings=None,
        cache: Optional[EmbeddingCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> "EmbeddingGenerator":
        if settings is None:
            from ...config import get_settings
            settings = get_settings()

        return cls(
            provider=provider,
            cache=cache or get_embedding_cache(),
            rate_limiter=rate_limiter or RateLimiter(settings.EMBEDDING_RATE_LIMIT_PER_SECOND),
            model=settings.EMBEDDING_MODEL,
            dimensions=settings.EMBEDDING_DIMENSIONS,
            max_retries=settings.EMBEDDING_MAX_RETRIES,
            retry_base_delay=settings.EMBEDDING_RETRY_BASE_DELAY,
            max_input_chars=settings.EMBEDDING_MAX_INPUT_CHARS,
        )

    def generate(self, text: Optional[str]) -> Optional[list[float]]:
        """Generate (or fetch from cache) the embedding for text.

        Args:
            text: Free text; None or blank short-circuits

        Returns:
            Vector of exactly ``dimensions`` floats, or None for blank input

        Raises:
            EmbeddingGenerationError: Every attempt failed (or auth failed)
        """
        if text is None or not text.strip():
            logger.warning("Attempted to generate embedding for empty text")
            return None

        prepared = truncate_text_for_embedding(text.strip(), self.max_input_chars)
        return self.cache.get_or_compute(prepared, lambda: self._generate_with_retry(prepared))

    def _generate_with_retry(self, text: str) -> list[float]:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            self.rate_limiter.acquire()
            try:
                return self._call_provider(text)
            except EmbeddingAuthError as e:
                logger.error("Embedding provider rejected credentials: %s", e)
                raise EmbeddingGenerationError(
                    f"Embedding provider authentication failed: {e}", attempts=attempt
                ) from e
            except Exception as e:
                last_error = e
                logger.warning(
                    "Embedding attempt %d/%d failed: %s",
                    attempt,
                    self.max_retries,
                    e,
                    extra={"attempt": attempt},
                )
                if attempt < self.max_retries:
                    self._sleep(self.retry_base_delay * attempt)

        logger.error("Failed to generate embedding after %d attempts", self.max_retries)
        raise EmbeddingGenerationError(
            f"Failed to generate embedding after {self.max_retries} attempts: {last_error}",
            attempts=self.max_retries,
        ) from last_error

    def _call_provider(self, text: str) -> list[float]:
        start = time.perf_counter()
        try:
            result = self.provider.embed_text(text, model=self.model, dimensions=self.dimensions)
            if len(result.embedding) != self.dimensions:
                raise EmbeddingInvalidResponseError(
                    f"Expected {self.dimensions}-dimensional embedding, got {len(result.embedding)}"
                )
        except Exception:
            embedding_calls_total.labels(model=self.model, status="error").inc()
            raise
        finally:
            embedding_latency_ms.labels(model=self.model).observe((time.perf_counter() - start) * 1000)

        embedding_calls_total.labels(model=self.model, status="success").inc()
        if result.tokens:
            embedding_tokens_total.labels(model=self.model).inc(result.tokens)

        logger.debug("Generated embedding with %d dimensions", len(result.embedding))
        return [float(x) for x in result.embedding]

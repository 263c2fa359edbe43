"""Embedding provider port and its error hierarchy.

EmbeddingGenerator talks to this interface only; the OpenAI adapter, the
"not configured" stand-in and test fakes implement it. Providers translate
their own failures into the errors below and never retry: retries, rate
limiting and caching belong to the generator.

    EmbeddingError
    ├── EmbeddingAuthError            permanent, not retried
    ├── TransientEmbeddingError       retried with backoff
    │   ├── EmbeddingTimeoutError
    │   ├── EmbeddingRateLimitError
    │   ├── EmbeddingServiceError
    │   └── EmbeddingInvalidResponseError
    └── EmbeddingGenerationError      raised by the generator once it gives up
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class EmbeddingResult:
    """One embedding call's output.

    ``dimension`` is what the provider actually returned; the generator
    checks it against the configured column size.
    """
    embedding: list[float]
    model: str
    dimension: int
    tokens: int = 0


class EmbeddingProviderPort(ABC):

    @abstractmethod
    def embed_text(
        self,
        text: str,
        model: str = "text-embedding-3-small",
        dimensions: Optional[int] = None,
    ) -> EmbeddingResult:
        """Embed one already-normalized, already-truncated text.

        Args:
            text: Canonical entity text or a search query
            model: Provider model name
            dimensions: Requested output size, for models that support shortening

        Raises:
            ValueError: Blank text
            EmbeddingAuthError: Credentials missing or rejected
            TransientEmbeddingError: Any failure worth retrying
        """


class EmbeddingError(Exception):
    """Base exception for embedding operations"""


class EmbeddingAuthError(EmbeddingError):
    """Credentials missing or rejected by the provider"""


class TransientEmbeddingError(EmbeddingError):
    """Failure that may succeed on a later attempt"""


class EmbeddingTimeoutError(TransientEmbeddingError):
    """Request exceeded the client timeout"""


class EmbeddingRateLimitError(TransientEmbeddingError):
    """Provider-side rate limit hit"""


class EmbeddingServiceError(TransientEmbeddingError):
    """Provider returned a server or API error"""


class EmbeddingInvalidResponseError(TransientEmbeddingError):
    """Empty, malformed or wrong-sized embedding"""


class EmbeddingGenerationError(EmbeddingError):
    """The generator gave up on a text.

    ``attempts`` is how many provider calls were made; the last provider
    error is chained as ``__cause__``.
    """

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts

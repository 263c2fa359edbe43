"""Embedding provider port and errors."""

from .ports import (
    EmbeddingAuthError,
    EmbeddingError,
    EmbeddingGenerationError,
    EmbeddingInvalidResponseError,
    EmbeddingProviderPort,
    EmbeddingRateLimitError,
    EmbeddingResult,
    EmbeddingServiceError,
    EmbeddingTimeoutError,
    TransientEmbeddingError,
)

__all__ = [
    "EmbeddingAuthError",
    "EmbeddingError",
    "EmbeddingGenerationError",
    "EmbeddingInvalidResponseError",
    "EmbeddingProviderPort",
    "EmbeddingRateLimitError",
    "EmbeddingResult",
    "EmbeddingServiceError",
    "EmbeddingTimeoutError",
    "TransientEmbeddingError",
]

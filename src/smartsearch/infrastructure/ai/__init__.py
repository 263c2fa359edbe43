"""AI Infrastructure - Adapters for embedding providers.

This module contains concrete implementations of AI domain ports.
"""

import logging

from ...domain.ai.ports import EmbeddingProviderPort, EmbeddingAuthError
from .openai_embeddings import OpenAIEmbeddingAdapter
from .unavailable import UnavailableEmbeddingProvider

logger = logging.getLogger(__name__)


def build_embedding_provider(settings) -> EmbeddingProviderPort:
    """Create the configured embedding provider.

    Falls back to UnavailableEmbeddingProvider when OpenAI credentials are
    missing, so the service still starts and serves lexical results.
    """
    try:
        return OpenAIEmbeddingAdapter(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_EMBEDDING_TIMEOUT,
        )
    except EmbeddingAuthError as e:
        logger.warning("Embedding provider unavailable, semantic search disabled: %s", e)
        return UnavailableEmbeddingProvider(str(e))


__all__ = [
    "OpenAIEmbeddingAdapter",
    "UnavailableEmbeddingProvider",
    "build_embedding_provider",
]

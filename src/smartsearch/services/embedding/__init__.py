"""Embedding Services - text to vector conversion.

This module provides services for:
- Canonical text generation from item, shop and category data
- Process-wide embedding cache
- Rate-limited, retrying embedding generation
"""

from .cache import CacheStats, EmbeddingCache, get_embedding_cache, reset_embedding_cache
from .generator import EmbeddingGenerator
from .rate_limiter import RateLimiter
from .text_generator import (
    generate_item_text,
    generate_shop_text,
    generate_category_text,
    calculate_text_hash,
    truncate_text_for_embedding,
)

__all__ = [
    "CacheStats",
    "EmbeddingCache",
    "EmbeddingGenerator",
    "RateLimiter",
    "get_embedding_cache",
    "reset_embedding_cache",
    "generate_item_text",
    "generate_shop_text",
    "generate_category_text",
    "calculate_text_hash",
    "truncate_text_for_embedding",
]

"""Indexing Services - persist entity embeddings."""

from .hooks import EntityChangeHooks
from .indexer import CoverageStats, Indexer, ReindexReport

__all__ = [
    "CoverageStats",
    "EntityChangeHooks",
    "Indexer",
    "ReindexReport",
]

"""Similarity Store Port - query interface the search orchestrator depends on."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..models import EntityType


@dataclass
class VectorHit:
    """Row returned by a vector similarity query. score = 1 - cosine distance."""
    id: int
    title: str
    score: float
    entity: Any


@dataclass
class LexicalHit:
    """Row returned by a substring query, with the fixed lexical score.

    match_type is one of: exact, prefix, contains, description
    """
    id: int
    title: str
    score: float
    match_type: str
    created_at: Optional[datetime]
    entity: Any


# Lexical match kinds, best first
MATCH_TYPES = ("exact", "prefix", "contains", "description")


class StoreQueryError(Exception):
    """A similarity store query failed. The session has been rolled back."""

    def __init__(self, message: str, entity_type: Optional[EntityType] = None):
        super().__init__(message)
        self.entity_type = entity_type


class SimilarityStorePort(ABC):
    """Per-entity-type vector and lexical lookups."""

    @abstractmethod
    def search_vector(self, entity_type: EntityType, query_vector: list[float], limit: int) -> list[VectorHit]:
        """Visible rows with an embedding, nearest first.

        Raises:
            StoreQueryError: Query failed
        """
        pass

    @abstractmethod
    def search_lexical(self, entity_type: EntityType, query_text: str, limit: int) -> list[LexicalHit]:
        """Visible rows whose title or description contains query_text.

        Raises:
            StoreQueryError: Query failed
        """
        pass

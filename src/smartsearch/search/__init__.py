"""Search - similarity store, orchestrator and HTTP surface."""

from .ports import LexicalHit, SimilarityStorePort, StoreQueryError, VectorHit
from .service import FALLBACK_MESSAGE, UNAVAILABLE_MESSAGE, SearchService
from .store import SimilarityStore

__all__ = [
    "FALLBACK_MESSAGE",
    "UNAVAILABLE_MESSAGE",
    "LexicalHit",
    "SearchService",
    "SimilarityStore",
    "SimilarityStorePort",
    "StoreQueryError",
    "VectorHit",
]

"""Search Orchestrator - semantic search with a keyword fallback.

Primary path: embed the query once, ask the similarity store for the nearest
rows of every requested entity type, merge, drop everything under the
relevance threshold and rank by score.

Fallback path (any failure on the primary path): substring search with a
fixed score, flagged on the response. If that fails too the caller gets an
empty, flagged response. search() never raises.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, Union

from pydantic import ValidationError

from ..models import EntityType
from ..observability.metrics import search_duration_seconds, search_requests_total, search_results_count
from ..services.embedding.generator import EmbeddingGenerator
from .ports import MATCH_TYPES, LexicalHit, SimilarityStorePort, StoreQueryError, VectorHit
from .schemas import SearchResponse, build_result

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "AI search temporarily unavailable. Showing keyword-based results."
UNAVAILABLE_MESSAGE = "Search temporarily unavailable. Please try again later."

ALL_TYPES = (EntityType.ITEM, EntityType.SHOP, EntityType.CATEGORY)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class QueryEmbeddingUnavailable(Exception):
    """The generator produced no vector for the query."""
    pass


def _timestamp(value: Optional[datetime]) -> float:
    if value is None:
        return _EPOCH.timestamp()
    if value.tzinfo is None:
        # SQLite hands back naive datetimes; they are stored as UTC
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def lexical_sort_key(hit: LexicalHit):
    """Score desc, then exact > prefix > contains > description, newest first, id desc."""
    return (-hit.score, MATCH_TYPES.index(hit.match_type), -_timestamp(hit.created_at), -hit.id)


class SearchService:
    """Dual-path search over items, shops and categories.

    Example:
        service = SearchService(SimilarityStore(db), generator, min_score_threshold=0.5)
        response = service.search("wooden table", entity_type=EntityType.ITEM, limit=10)
        if response.is_fallback:
            print(response.message)
    """

    def __init__(
        self,
        store: SimilarityStorePort,
        generator: EmbeddingGenerator,
        min_score_threshold: float = 0.5,
        max_limit: int = 100,
        default_limit: int = 20,
    ):
        self.store = store
        self.generator = generator
        self.min_score_threshold = min_score_threshold
        self.max_limit = max_limit
        self.default_limit = default_limit

    @classmethod
    def from_settings(cls, store: SimilarityStorePort, generator: EmbeddingGenerator, settings=None) -> "SearchService":
        if settings is None:
            from ..config import get_settings
            settings = get_settings()
        return cls(
            store=store,
            generator=generator,
            min_score_threshold=settings.SEARCH_MIN_SCORE_THRESHOLD,
            max_limit=settings.SEARCH_MAX_LIMIT,
            default_limit=settings.SEARCH_DEFAULT_LIMIT,
        )

    def clamp_limit(self, limit: Optional[int]) -> int:
        """None means default_limit; anything else is clamped to [1, max_limit]."""
        if limit is None:
            limit = self.default_limit
        return max(1, min(int(limit), self.max_limit))

    def search(
        self,
        query: str,
        entity_type: Optional[Union[EntityType, str]] = None,
        limit: Optional[int] = None,
    ) -> SearchResponse:
        """Run a search. Never raises.

        Args:
            query: Non-blank query text (blank queries are rejected at the HTTP layer)
            entity_type: Restrict to one type; None searches all three
            limit: Maximum results, clamped to [1, max_limit]; None uses default_limit

        Returns:
            SearchResponse; ``is_fallback`` tells which path produced it
        """
        start = time.perf_counter()
        limit = self.clamp_limit(limit)
        types = ALL_TYPES if entity_type is None else (EntityType(entity_type),)

        logger.info(
            "Searching for: '%s' (type: %s, limit: %d)",
            query,
            entity_type.value if isinstance(entity_type, EntityType) else entity_type,
            limit,
            extra={"query": query},
        )

        try:
            response = self._semantic_search(query, types, limit)
            path = "semantic"
        except Exception as e:
            logger.warning(
                "Semantic search failed, falling back to keyword search: %s",
                e,
                extra={"query": query},
            )
            try:
                response = self._keyword_search(query, types, limit)
                path = "fallback"
            except Exception as fallback_error:
                logger.error(
                    "Fallback search failed: %s",
                    fallback_error,
                    extra={"query": query},
                )
                response = SearchResponse(
                    query=query,
                    total_results=0,
                    results=[],
                    is_fallback=True,
                    message=UNAVAILABLE_MESSAGE,
                )
                path = "unavailable"

        search_requests_total.labels(path=path).inc()
        search_duration_seconds.labels(path=path).observe(time.perf_counter() - start)
        search_results_count.observe(response.total_results)
        return response

    def _semantic_search(self, query: str, types: Sequence[EntityType], limit: int) -> SearchResponse:
        query_vector = self.generator.generate(query)
        if query_vector is None:
            raise QueryEmbeddingUnavailable("Failed to generate embedding for query")

        hits = self._fan_out(types, lambda t: self.store.search_vector(t, query_vector, limit), "vector")

        relevant = [(t, hit) for t, hit in hits if hit.score >= self.min_score_threshold]
        relevant.sort(key=lambda pair: pair[1].score, reverse=True)

        results = self._project(relevant, limit)
        logger.info("Semantic search: found %d results for query: '%s'", len(results), query, extra={"query": query})

        return SearchResponse(query=query, total_results=len(results), results=results, is_fallback=False)

    def _keyword_search(self, query: str, types: Sequence[EntityType], limit: int) -> SearchResponse:
        hits = self._fan_out(types, lambda t: self.store.search_lexical(t, query, limit), "lexical")
        hits.sort(key=lambda pair: lexical_sort_key(pair[1]))

        results = self._project(hits, limit)
        logger.info("Fallback search: found %d results", len(results), extra={"query": query})

        return SearchResponse(
            query=query,
            total_results=len(results),
            results=results,
            is_fallback=True,
            message=FALLBACK_MESSAGE,
        )

    def _fan_out(
        self,
        types: Sequence[EntityType],
        lookup: Callable[[EntityType], list],
        mode: str,
    ) -> list[tuple[EntityType, Union[VectorHit, LexicalHit]]]:
        """Run lookup per type. A failing type contributes nothing unless every type fails."""
        merged = []
        failures = 0
        last_error: Optional[StoreQueryError] = None

        for entity_type in types:
            try:
                merged.extend((entity_type, hit) for hit in lookup(entity_type))
            except StoreQueryError as e:
                failures += 1
                last_error = e
                logger.error(
                    "Error searching %s (%s): %s",
                    entity_type.value,
                    mode,
                    e,
                    extra={"entity_type": entity_type.value},
                )

        if types and failures == len(types):
            raise last_error
        return merged

    def _project(self, hits, limit: int) -> list:
        results = []
        for entity_type, hit in hits:
            if len(results) >= limit:
                break
            try:
                results.append(build_result(entity_type, hit.entity, hit.score))
            except (ValidationError, AttributeError) as e:
                logger.warning(
                    "Failed to load %s %s: %s",
                    entity_type.value,
                    hit.id,
                    e,
                    extra={"entity_type": entity_type.value, "entity_id": hit.id},
                )
        return results

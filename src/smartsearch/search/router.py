"""Search API endpoints"""

import logging
from typing import Optional

from celery.result import AsyncResult
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_embedding_generator, get_indexer, get_search_service, require_admin
from ..domain.ai import EmbeddingError
from ..models import EMBEDDABLE_MODELS, EntityType
from ..services.indexing import Indexer
from ..workers.celery_app import celery_app
from ..workers.reindex_worker import SCOPE_ALL, reindex_all_task, reindex_type_task
from .schemas import (
    CacheStatsResponse,
    CoverageEntry,
    CoverageResponse,
    ReindexAcceptedResponse,
    ReindexEntityResponse,
    ReindexTaskStatusResponse,
    SearchCheckResponse,
    SearchRequest,
    SearchResponse,
)
from .service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])
admin_router = APIRouter(
    prefix="/api/search/admin",
    tags=["search-admin"],
    dependencies=[Depends(require_admin)],
)

CHECK_QUERY = "test"


def _require_query(query: Optional[str]) -> str:
    if query is None or not query.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query must not be empty",
        )
    return query.strip()


# ============================================================================
# Search Endpoints
# ============================================================================

@router.get("", response_model=SearchResponse)
def search_get(
    query: Optional[str] = Query(None, description="Search text"),
    type: Optional[EntityType] = Query(None, description="ITEM, SHOP or CATEGORY; omit for all"),
    limit: Optional[int] = Query(None, description="Maximum number of results (default SEARCH_DEFAULT_LIMIT, capped at SEARCH_MAX_LIMIT)"),
    service: SearchService = Depends(get_search_service),
):
    """
    Smart search across items, shops and categories.

    Semantic when the embedding provider is reachable, keyword-based
    otherwise (``is_fallback`` is set on the response).

    Raises:
        HTTPException 400: If query is empty
        HTTPException 422: If type is not a known entity type
    """
    return service.search(_require_query(query), entity_type=type, limit=limit)


@router.post("", response_model=SearchResponse)
def search_post(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
):
    """Smart search with a JSON body ``{query, type, limit}``."""
    return service.search(_require_query(request.query), entity_type=request.type, limit=request.limit)


@router.get("/test", response_model=SearchCheckResponse)
def search_check(service: SearchService = Depends(get_search_service)):
    """Run a one-result search and report whether the semantic path works."""
    response = service.search(CHECK_QUERY, limit=1)
    working = not response.is_fallback
    return SearchCheckResponse(
        status="ok" if working else "degraded",
        semantic_search_working=working,
        query=CHECK_QUERY,
        results_count=response.total_results,
        message=response.message,
    )


# ============================================================================
# Admin Endpoints
# ============================================================================

@admin_router.post(
    "/reindex-all",
    response_model=ReindexAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def reindex_all():
    """Start a background reindex of every item, shop and category."""
    logger.info("Admin triggered full reindexing")
    result = reindex_all_task.delay()
    return ReindexAcceptedResponse(task_id=result.id, scope=SCOPE_ALL)


@admin_router.post(
    "/reindex/{entity_type}",
    response_model=ReindexAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def reindex_type(entity_type: EntityType):
    """Start a background reindex of one entity type."""
    logger.info("Admin triggered %s reindexing", entity_type.value, extra={"entity_type": entity_type.value})
    result = reindex_type_task.delay(entity_type.value)
    return ReindexAcceptedResponse(task_id=result.id, scope=entity_type.value)


@admin_router.post("/reindex/{entity_type}/{entity_id}", response_model=ReindexEntityResponse)
def reindex_entity(
    entity_type: EntityType,
    entity_id: int,
    db: Session = Depends(get_db),
    indexer: Indexer = Depends(get_indexer),
):
    """
    Reindex a single entity synchronously.

    Raises:
        HTTPException 404: If the entity does not exist
        HTTPException 503: If the embedding could not be generated
    """
    entity = db.get(EMBEDDABLE_MODELS[entity_type], entity_id)
    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity_type.value} {entity_id} not found",
        )

    logger.info(
        "Reindexing %s: %s",
        entity_type.value,
        entity_id,
        extra={"entity_type": entity_type.value, "entity_id": entity_id},
    )
    try:
        indexed = indexer.index(entity)
    except EmbeddingError as e:
        db.rollback()
        logger.error(
            "Failed to reindex %s %s: %s",
            entity_type.value,
            entity_id,
            e,
            extra={"entity_type": entity_type.value, "entity_id": entity_id},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Embedding provider unavailable",
        )

    return ReindexEntityResponse(
        entity_type=entity_type,
        entity_id=entity_id,
        indexed=indexed,
        message=f"{entity_type.value.capitalize()} reindexed successfully" if indexed else "Nothing to index",
    )


@admin_router.get("/reindex/{task_id}", response_model=ReindexTaskStatusResponse)
def reindex_status(task_id: str):
    """Report the state of a background reindex task."""
    result = AsyncResult(task_id, app=celery_app)

    response = ReindexTaskStatusResponse(task_id=task_id, state=result.state)
    if result.successful():
        response.result = result.result
    elif result.failed():
        response.error = str(result.result)
    return response


@admin_router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats():
    """Embedding cache size, hit rate and hit/miss counts."""
    stats = get_embedding_generator().cache.stats()
    return CacheStatsResponse(
        size=stats.size,
        hit_rate=stats.hit_rate,
        hit_count=stats.hit_count,
        miss_count=stats.miss_count,
    )


@admin_router.post("/cache/clear", status_code=status.HTTP_204_NO_CONTENT)
def cache_clear():
    """Invalidate every cached embedding."""
    logger.info("Admin cleared the embedding cache")
    get_embedding_generator().cache.clear()


@admin_router.get("/coverage", response_model=CoverageResponse)
def coverage(indexer: Indexer = Depends(get_indexer)):
    """Share of rows per entity type that currently have an embedding."""
    return CoverageResponse(
        coverage=[
            CoverageEntry(
                entity_type=entry.entity_type,
                total=entry.total,
                indexed=entry.indexed,
                coverage_percent=entry.coverage_percent,
            )
            for entry in indexer.embedding_coverage()
        ]
    )

"""Global FastAPI dependencies for search, indexing and the admin surface.

This module provides:
- get_embedding_generator: Process-wide EmbeddingGenerator (shared cache and rate limiter)
- get_search_service: SearchService bound to the request's database session
- get_indexer: Indexer bound to the request's database session
- require_admin: Shared-secret guard for /api/search/admin/*
"""

import logging
import secrets
import threading
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db
from .infrastructure.ai import build_embedding_provider
from .search.service import SearchService
from .search.store import SimilarityStore
from .services.embedding import EmbeddingGenerator
from .services.indexing import Indexer

logger = logging.getLogger(__name__)

_generator: Optional[EmbeddingGenerator] = None
_generator_lock = threading.Lock()


def get_embedding_generator() -> EmbeddingGenerator:
    """Process-wide EmbeddingGenerator.

    One instance per process so that every caller shares the rate limiter.
    Created on first use from settings.
    """
    global _generator
    if _generator is None:
        with _generator_lock:
            if _generator is None:
                settings = get_settings()
                _generator = EmbeddingGenerator.from_settings(build_embedding_provider(settings), settings)
    return _generator


def set_embedding_generator(generator: Optional[EmbeddingGenerator]) -> None:
    """Replace (or with None, reset) the process-wide generator."""
    global _generator
    with _generator_lock:
        _generator = generator


def build_indexer(session: Session) -> Indexer:
    return Indexer(session, get_embedding_generator())


def build_search_service(session: Session) -> SearchService:
    settings = get_settings()
    return SearchService.from_settings(
        SimilarityStore(session, lexical_score=settings.LEXICAL_MATCH_SCORE),
        get_embedding_generator(),
        settings,
    )


def get_search_service(db: Session = Depends(get_db)) -> SearchService:
    """SearchService for the current request.

    Example:
        @router.get("/search")
        def search(query: str, service: SearchService = Depends(get_search_service)):
            return service.search(query)
    """
    return build_search_service(db)


def get_indexer(db: Session = Depends(get_db)) -> Indexer:
    return build_indexer(db)


def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
    """Check the X-Admin-Token header against ADMIN_API_TOKEN.

    Raises:
        HTTPException 403: Admin surface disabled (no token configured)
        HTTPException 401: Header missing or wrong
    """
    expected = get_settings().ADMIN_API_TOKEN
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin endpoints are disabled",
        )

    if not x_admin_token or not secrets.compare_digest(x_admin_token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected admin request with invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
        )

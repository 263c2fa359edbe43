"""smartsearch - FastAPI application

Semantic search over items, shops and categories with a keyword fallback.

Run with:
    uvicorn smartsearch.main:app --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import Settings, get_settings
from .dependencies import get_embedding_generator, set_embedding_generator
from .domain.ai import EmbeddingError
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.request_id import REQUEST_ID_HEADER
from .observability.router import router as observability_router
from .search.router import admin_router as search_admin_router
from .search.router import router as search_router
from .services.embedding import reset_embedding_cache

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message, **extra})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the process-wide embedding generator (and its cache) on startup, drop both on shutdown."""
    logger.info("smartsearch API starting up (environment=%s, debug=%s)", settings.ENVIRONMENT, settings.DEBUG)
    generator = get_embedding_generator()
    logger.info(
        "Embedding model %s (%d dimensions), semantic threshold %.2f",
        generator.model,
        generator.dimensions,
        settings.SEARCH_MIN_SCORE_THRESHOLD,
    )

    yield

    logger.info("smartsearch API shutting down...")
    set_embedding_generator(None)
    reset_embedding_cache()


def register_exception_handlers(app: FastAPI) -> None:
    """Structured JSON errors; internals are logged, never returned."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Validation error on %s %s", request.method, request.url.path)
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            "Request validation failed",
            details=jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(EmbeddingError)
    async def embedding_exception_handler(request: Request, exc: EmbeddingError) -> JSONResponse:
        logger.error("Embedding provider error on %s %s: %s", request.method, request.url.path, exc)
        return _error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "embedding_unavailable",
            "The embedding provider is unavailable. Please try again later.",
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "database_error",
            "A database error occurred. Please try again later.",
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred. Please try again later.",
        )


def create_app(settings: Settings = settings) -> FastAPI:
    """Build the FastAPI application.

    API docs are served outside production only.
    """
    docs_enabled = settings.ENVIRONMENT != "production"
    application = FastAPI(
        title="smartsearch API",
        description="Semantic search with keyword fallback for items, shops and categories",
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    # Added last so it wraps CORS and sees every request
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    application.add_middleware(RequestIDMiddleware)

    register_exception_handlers(application)

    application.include_router(observability_router)
    application.include_router(search_router)
    application.include_router(search_admin_router)

    @application.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        return {
            "name": "smartsearch API",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if docs_enabled else None,
        }

    return application


app = create_app()

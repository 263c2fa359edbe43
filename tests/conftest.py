"""Pytest fixtures for smartsearch tests.

Provides reusable test fixtures for:
- Database session on a throwaway SQLite file (tables created per test)
- A fake embedding provider with deterministic vectors and failure injection
- EmbeddingGenerator wired to the fake provider (no sleeping, no rate limiting)
- Entity factories for categories, shops and items
- FastAPI test client with the database and generator overridden

Usage:
    def test_fallback(client, make_item):
        make_item(title="Laptop stand")
        response = client.get("/api/search", params={"query": "laptop"})
        assert response.json()["is_fallback"] is True
"""

import hashlib
import os
import tempfile

# Set environment variables BEFORE any imports to ensure they take effect
_DB_DIR = tempfile.mkdtemp(prefix="smartsearch-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["EMBEDDING_DIMENSIONS"] = "8"
os.environ["EMBEDDING_RETRY_BASE_DELAY"] = "0"
os.environ["EMBEDDING_RATE_LIMIT_PER_SECOND"] = "100000"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
# Nothing listens here: Redis-backed code takes its degraded path
os.environ["REDIS_URL"] = "redis://localhost:6399/0"
os.environ["LOG_JSON"] = "false"
os.environ.pop("OPENAI_API_KEY", None)

from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from smartsearch.database import SessionLocal, engine, get_db
from smartsearch.domain.ai import EmbeddingProviderPort, EmbeddingResult
from smartsearch.models import Base, Category, Item, Shop
from smartsearch.services.embedding import EmbeddingCache, EmbeddingGenerator, RateLimiter

DIMENSIONS = 8
ADMIN_TOKEN = "test-admin-token"


def deterministic_vector(text: str, dimensions: int = DIMENSIONS) -> list[float]:
    """Stable pseudo-embedding for text.

    Components are multiples of 1/128 in [-1, 1) so they survive the
    float32 round trip through the vector column unchanged.
    """
    digest = hashlib.sha256(text.strip().lower().encode("utf-8")).digest()
    return [(digest[i] - 128) / 128 for i in range(dimensions)]


class FakeEmbeddingProvider(EmbeddingProviderPort):
    """In-memory provider recording every call.

    fail_times: number of leading calls that raise ``error``
    fail_on: substrings; texts containing any of them always raise ``error``
    """

    def __init__(self, dimensions: int = DIMENSIONS, error: Optional[Exception] = None):
        self.dimensions = dimensions
        self.error = error or RuntimeError("provider down")
        self.fail_times = 0
        self.fail_on: list[str] = []
        self.calls: list[str] = []

    def embed_text(self, text, model="text-embedding-3-small", dimensions=None) -> EmbeddingResult:
        self.calls.append(text)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise self.error
        if any(marker in text for marker in self.fail_on):
            raise self.error

        return EmbeddingResult(
            embedding=deterministic_vector(text, self.dimensions),
            model=model,
            dimension=self.dimensions,
            tokens=len(text.split()),
        )


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def sleeps() -> list[float]:
    """Backoff delays requested by the generator, in order."""
    return []


@pytest.fixture
def generator(provider, sleeps) -> EmbeddingGenerator:
    return EmbeddingGenerator(
        provider=provider,
        cache=EmbeddingCache(max_size=100, ttl_seconds=3600),
        rate_limiter=RateLimiter(1_000_000, sleep=lambda _: None),
        dimensions=DIMENSIONS,
        max_retries=3,
        retry_base_delay=1.0,
        sleep=sleeps.append,
    )


@pytest.fixture
def make_category(db_session: Session):
    def _make(name: str = "Furniture", slug: Optional[str] = None, **kwargs) -> Category:
        category = Category(name=name, slug=slug or name.lower().replace(" ", "-"), **kwargs)
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category
    return _make


@pytest.fixture
def make_shop(db_session: Session):
    def _make(name: str = "Oak & Co", categories: Optional[list] = None, **kwargs) -> Shop:
        kwargs.setdefault("is_approved", True)
        shop = Shop(name=name, **kwargs)
        shop.categories = list(categories or [])
        db_session.add(shop)
        db_session.commit()
        db_session.refresh(shop)
        return shop
    return _make


@pytest.fixture
def make_item(db_session: Session, make_shop):
    def _make(title: str = "Oak table", shop: Optional[Shop] = None, **kwargs) -> Item:
        if shop is None:
            shop = make_shop(name=f"Shop for {title}")
        item = Item(title=title, shop_id=shop.id, **kwargs)
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item
    return _make


@pytest.fixture(scope="function")
def client(db_session: Session, generator: EmbeddingGenerator):
    """Create a test client.

    The request database session is the test's db_session and the
    process-wide generator is the fake-provider generator.
    """
    from smartsearch.dependencies import set_embedding_generator
    from smartsearch.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    set_embedding_generator(generator)

    yield TestClient(app)

    app.dependency_overrides.clear()
    set_embedding_generator(None)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Token": ADMIN_TOKEN}

"""Engine and session management.

The API uses ``get_db`` (one session per request); Celery tasks use the
``get_db_session`` context manager, which commits or rolls back on exit.
"""

from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from .config import get_settings


def engine_options(url: str) -> Dict[str, Any]:
    """create_engine keyword arguments for a database URL.

    PostgreSQL gets a bounded pool. SQLite (tests) gets no pool options and
    allows connections to move between threads, since FastAPI runs sync
    endpoints in a threadpool.
    """
    options: Dict[str, Any] = {"pool_pre_ping": True, "echo": False}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = 5
        options["max_overflow"] = 10
    return options


def build_engine(url: str) -> Engine:
    return create_engine(url, **engine_options(url))


DATABASE_URL = get_settings().DATABASE_URL

engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Session for background work.

    Example:
        with get_db_session() as session:
            Indexer(session, get_embedding_generator()).reindex_all()
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

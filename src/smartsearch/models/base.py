"""Declarative base and the columns shared by every searchable model"""

from datetime import datetime, timezone

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Column, DateTime, Integer, TypeDecorator, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

from ..config import get_settings


class PortableJSONB(TypeDecorator):
    """JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchableMixin:
    """Integer id, creation time and the nullable embedding column.

    ``embedding`` stays NULL until the indexer has written a vector for the
    row's canonical text. Subclasses set ``entity_type`` and expose a
    ``title`` used in search results.
    """

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    embedding = Column(Vector(get_settings().EMBEDDING_DIMENSIONS), nullable=True)


Base = declarative_base()

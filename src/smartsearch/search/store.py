"""Similarity Store - pgvector and substring queries over embeddable entities.

Uses the pgvector ``<=>`` cosine distance operator (served by the HNSW
indexes) for semantic lookups and ILIKE for the lexical fallback.
"""

import logging
from typing import Optional

from sqlalchemy import Select, case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Category, EntityType, Item, Shop
from ..observability.metrics import store_query_errors_total
from .ports import MATCH_TYPES, LexicalHit, SimilarityStorePort, StoreQueryError, VectorHit

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _columns(entity_type: EntityType):
    """(model, title column, secondary text column, visibility column) per type."""
    if entity_type == EntityType.ITEM:
        return Item, Item.title, Item.description, Item.is_active
    if entity_type == EntityType.SHOP:
        return Shop, Shop.name, Shop.description, Shop.is_approved
    if entity_type == EntityType.CATEGORY:
        return Category, Category.name, Category.slug, Category.is_active
    raise ValueError(f"Unknown entity type: {entity_type}")


class SimilarityStore(SimilarityStorePort):
    """SQLAlchemy implementation of SimilarityStorePort.

    Example:
        store = SimilarityStore(db, lexical_score=0.6)
        hits = store.search_vector(EntityType.ITEM, query_vector, limit=20)
        for hit in hits:
            print(f"{hit.title}: {hit.score:.2f}")
    """

    def __init__(self, session: Session, lexical_score: float = 0.6):
        self.session = session
        self.lexical_score = lexical_score

    @staticmethod
    def build_vector_query(entity_type: EntityType, query_vector: list[float], limit: int) -> Select:
        """Nearest visible rows by cosine distance, with ``score = 1 - distance``."""
        model, _, _, visible = _columns(entity_type)
        distance = model.embedding.cosine_distance(query_vector)

        return (
            select(model, (1 - distance).label("score"))
            .where(model.embedding.isnot(None))
            .where(visible.is_(True))
            .order_by(distance)
            .limit(limit)
        )

    @staticmethod
    def build_lexical_query(entity_type: EntityType, query_text: str, limit: int) -> Select:
        """Visible rows containing query_text, exact/prefix title matches first."""
        model, title, secondary, visible = _columns(entity_type)
        escaped = escape_like(query_text)
        contains = f"%{escaped}%"

        match_rank = case(
            (func.lower(title) == query_text.lower(), 0),
            (title.ilike(f"{escaped}%", escape=LIKE_ESCAPE), 1),
            (title.ilike(contains, escape=LIKE_ESCAPE), 2),
            else_=3,
        ).label("match_rank")

        return (
            select(model, match_rank)
            .where(visible.is_(True))
            .where(
                or_(
                    title.ilike(contains, escape=LIKE_ESCAPE),
                    secondary.ilike(contains, escape=LIKE_ESCAPE),
                )
            )
            .order_by(match_rank, model.created_at.desc(), model.id.desc())
            .limit(limit)
        )

    def search_vector(self, entity_type: EntityType, query_vector: list[float], limit: int) -> list[VectorHit]:
        entity_type = EntityType(entity_type)
        rows = self._execute(self.build_vector_query(entity_type, query_vector, limit), entity_type, "vector")

        return [
            VectorHit(id=entity.id, title=entity.title, score=float(score), entity=entity)
            for entity, score in rows
        ]

    def search_lexical(self, entity_type: EntityType, query_text: Optional[str], limit: int) -> list[LexicalHit]:
        entity_type = EntityType(entity_type)
        if query_text is None or not query_text.strip():
            return []

        query = self.build_lexical_query(entity_type, query_text.strip(), limit)
        rows = self._execute(query, entity_type, "lexical")

        return [
            LexicalHit(
                id=entity.id,
                title=entity.title,
                score=self.lexical_score,
                match_type=MATCH_TYPES[rank],
                created_at=entity.created_at,
                entity=entity,
            )
            for entity, rank in rows
        ]

    def _execute(self, query: Select, entity_type: EntityType, mode: str):
        try:
            return self.session.execute(query).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            store_query_errors_total.labels(entity_type=entity_type.value, mode=mode).inc()
            logger.error(
                "%s search failed for %s: %s",
                mode.capitalize(),
                entity_type.value,
                e,
                extra={"entity_type": entity_type.value},
            )
            raise StoreQueryError(f"{mode} search failed for {entity_type.value}", entity_type) from e

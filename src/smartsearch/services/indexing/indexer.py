"""Indexer - keeps entity embeddings in step with entity text.

The indexer is the only writer of the ``embedding`` column. It derives the
canonical text for an entity, asks the EmbeddingGenerator for a vector and
persists it on the row.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session, object_session

from ...models import EMBEDDABLE_MODELS, Category, EntityType, Item, Shop
from ...observability.metrics import entities_indexed_total
from ..embedding.generator import EmbeddingGenerator

logger = logging.getLogger(__name__)

Embeddable = Union[Item, Shop, Category]

PROGRESS_LOG_EVERY = 10


@dataclass
class ReindexReport:
    """Outcome of a full reindex run."""
    counts: dict[str, int] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass
class CoverageStats:
    entity_type: EntityType
    total: int
    indexed: int

    @property
    def coverage_percent(self) -> float:
        if self.total == 0:
            return 0.0
        return round(self.indexed * 100.0 / self.total, 2)


class Indexer:
    """Builds canonical text for entities and stores their embeddings.

    Example:
        indexer = Indexer(db, generator)
        indexer.index(item)                       # single entity, propagates errors
        indexer.index_all_of_type(EntityType.SHOP)  # bulk, failures skipped
    """

    def __init__(self, session: Session, generator: EmbeddingGenerator):
        self.session = session
        self.generator = generator

    def session_for(self, entity: Embeddable) -> Session:
        """Session that owns entity; entity CRUD code usually hands over rows from its own session."""
        return object_session(entity) or self.session

    def canonical_text(self, entity: Embeddable) -> str:
        """Canonical embedding text for any embeddable entity."""
        if isinstance(entity, Item):
            return self.generator.generate_item_text(
                entity.title,
                entity.description,
                entity.tags,
                self._item_category_name(entity),
            )
        if isinstance(entity, Shop):
            return self.generator.generate_shop_text(entity.name, entity.description, entity.owner_name)
        if isinstance(entity, Category):
            return self.generator.generate_category_text(entity.name, entity.slug)
        raise TypeError(f"Not an embeddable entity: {type(entity).__name__}")

    @staticmethod
    def _item_category_name(item: Item) -> Optional[str]:
        # Items have no category of their own; use the shop's first one
        shop = item.shop
        if shop is None or not shop.categories:
            return None
        return shop.categories[0].name

    def index(self, entity: Optional[Embeddable]) -> bool:
        """Recompute and persist the embedding for one entity.

        Returns:
            True if a vector was written, False for a no-op (None entity or
            empty canonical text)

        Raises:
            EmbeddingGenerationError: Embedding could not be generated
            SQLAlchemyError: Commit failed
        """
        if entity is None:
            return False
        if object_session(entity) is None:
            entity = self.session.merge(entity)

        entity_type = entity.entity_type.value
        text = self.canonical_text(entity)
        if not text:
            logger.debug(
                "Skipping %s %s: empty canonical text",
                entity_type,
                entity.id,
                extra={"entity_type": entity_type, "entity_id": entity.id},
            )
            entities_indexed_total.labels(entity_type=entity_type, status="skipped").inc()
            return False

        vector = self.generator.generate(text)
        if vector is None:
            entities_indexed_total.labels(entity_type=entity_type, status="skipped").inc()
            return False

        entity.embedding = vector
        self.session_for(entity).commit()

        entities_indexed_total.labels(entity_type=entity_type, status="indexed").inc()
        logger.debug(
            "Indexed %s: %s (ID: %s)",
            entity_type,
            entity.title,
            entity.id,
            extra={"entity_type": entity_type, "entity_id": entity.id},
        )
        return True

    def index_by_id(self, entity_type: EntityType, entity_id: int) -> bool:
        """Load an entity by id and index it. Unknown ids are a no-op."""
        entity_type = EntityType(entity_type)
        model = EMBEDDABLE_MODELS[entity_type]
        entity = self.session.get(model, entity_id)
        if entity is None:
            logger.info(
                "%s %s not found, nothing to index",
                entity_type.value,
                entity_id,
                extra={"entity_type": entity_type.value, "entity_id": entity_id},
            )
            return False
        return self.index(entity)

    def index_all_of_type(self, entity_type: EntityType) -> int:
        """Index every row of one type, ordered by id.

        Per-entity failures are logged, rolled back and skipped.

        Returns:
            Number of entities that received a vector. No-ops (empty
            canonical text) and failures are not counted.
        """
        entity_type = EntityType(entity_type)
        model = EMBEDDABLE_MODELS[entity_type]

        ids = [row_id for (row_id,) in self.session.query(model.id).order_by(model.id).all()]
        total = len(ids)
        logger.info("Indexing %d %s entities", total, entity_type.value, extra={"entity_type": entity_type.value})

        count = 0
        for processed, entity_id in enumerate(ids, start=1):
            try:
                if self.index_by_id(entity_type, entity_id):
                    count += 1
            except Exception as e:
                self.session.rollback()
                entities_indexed_total.labels(entity_type=entity_type.value, status="failed").inc()
                logger.error(
                    "Failed to index %s %s: %s",
                    entity_type.value,
                    entity_id,
                    e,
                    extra={"entity_type": entity_type.value, "entity_id": entity_id},
                )

            if processed % PROGRESS_LOG_EVERY == 0:
                logger.info("Indexed %d/%d %s entities", processed, total, entity_type.value)

        logger.info("Successfully indexed %d %s entities", count, entity_type.value)
        return count

    def index_all_items(self) -> int:
        return self.index_all_of_type(EntityType.ITEM)

    def index_all_shops(self) -> int:
        return self.index_all_of_type(EntityType.SHOP)

    def index_all_categories(self) -> int:
        return self.index_all_of_type(EntityType.CATEGORY)

    def reindex_all(self) -> ReindexReport:
        """Index every entity of every type and report per-type counts."""
        logger.info("Starting full reindexing...")
        start = time.perf_counter()

        report = ReindexReport()
        for entity_type in (EntityType.ITEM, EntityType.SHOP, EntityType.CATEGORY):
            report.counts[entity_type.value] = self.index_all_of_type(entity_type)

        report.duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "Full reindexing completed in %d ms. Items: %d, Shops: %d, Categories: %d",
            report.duration_ms,
            report.counts[EntityType.ITEM.value],
            report.counts[EntityType.SHOP.value],
            report.counts[EntityType.CATEGORY.value],
        )
        return report

    def index_all(self) -> int:
        """Index everything; returns the total number of vectors written."""
        return self.reindex_all().total

    def embedding_coverage(self) -> list[CoverageStats]:
        """Per-type count of rows and of rows that have an embedding."""
        stats = []
        for entity_type, model in EMBEDDABLE_MODELS.items():
            total = self.session.query(func.count(model.id)).scalar() or 0
            indexed = (
                self.session.query(func.count(model.id))
                .filter(model.embedding.isnot(None))
                .scalar()
                or 0
            )
            stats.append(CoverageStats(entity_type=entity_type, total=total, indexed=indexed))
        return stats

"""Entity change hooks.

Entity CRUD code calls these after a successful commit. Indexing here is
best-effort: a failure is logged and never propagates to the write path.
"""

import logging
from typing import Optional

from .indexer import Embeddable, Indexer

logger = logging.getLogger(__name__)


class EntityChangeHooks:
    """Re-index entities when they are created, updated or change visibility."""

    def __init__(self, indexer: Indexer):
        self.indexer = indexer

    def on_entity_created(self, entity: Optional[Embeddable]) -> bool:
        return self._reindex(entity, "created")

    def on_entity_updated(self, entity: Optional[Embeddable]) -> bool:
        return self._reindex(entity, "updated")

    def on_entity_status_changed(self, entity: Optional[Embeddable]) -> bool:
        return self._reindex(entity, "status_changed")

    def _reindex(self, entity: Optional[Embeddable], event: str) -> bool:
        if entity is None:
            return False

        entity_type = entity.entity_type.value
        try:
            return self.indexer.index(entity)
        except Exception as e:
            self.indexer.session_for(entity).rollback()
            logger.error(
                "Failed to index %s %s after %s: %s",
                entity_type,
                entity.id,
                event,
                e,
                extra={"entity_type": entity_type, "entity_id": entity.id},
            )
            return False

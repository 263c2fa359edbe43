"""Entity type tags shared by indexing, storage and search results."""

from enum import Enum


class EntityType(str, Enum):
    """Kinds of searchable entities.

    The value doubles as the ``type`` tag on search results.
    """
    ITEM = "ITEM"
    SHOP = "SHOP"
    CATEGORY = "CATEGORY"

"""SQLAlchemy models for searchable entities."""

from .base import Base, PortableJSONB, SearchableMixin
from .entity_type import EntityType
from .category import Category
from .shop import Shop, shop_categories
from .item import Item

EMBEDDABLE_MODELS = {
    EntityType.ITEM: Item,
    EntityType.SHOP: Shop,
    EntityType.CATEGORY: Category,
}

__all__ = [
    "Base",
    "PortableJSONB",
    "SearchableMixin",
    "EntityType",
    "Category",
    "Shop",
    "shop_categories",
    "Item",
    "EMBEDDABLE_MODELS",
]

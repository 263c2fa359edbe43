"""Category SQLAlchemy model"""

from sqlalchemy import Column, Integer, Text, Boolean, ForeignKey

from .base import Base, SearchableMixin
from .entity_type import EntityType


class Category(SearchableMixin, Base):
    """Taxonomy node. Searchable when ``is_active`` is true."""
    __tablename__ = "categories"

    entity_type = EntityType.CATEGORY

    name = Column(Text, nullable=False, unique=True)
    slug = Column(Text, nullable=False, unique=True)
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    icon = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")

    @property
    def title(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug={self.slug})>"

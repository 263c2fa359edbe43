"""Item SQLAlchemy model"""

from sqlalchemy import Column, Integer, Text, Boolean, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, SearchableMixin, utcnow
from .entity_type import EntityType


class Item(SearchableMixin, Base):
    """Catalog listing belonging to a shop. Searchable when ``is_active``."""
    __tablename__ = "items"
    __table_args__ = (
        Index("ix_items_shop_id", "shop_id"),
    )

    entity_type = EntityType.ITEM

    shop_id = Column(Integer, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    tags = Column(PortableJSONB, nullable=False, default=list)
    city = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    views = Column(Integer, nullable=False, default=0, server_default="0")
    favorites = Column(Integer, nullable=False, default=0, server_default="0")
    updated_at = Column(DateTime(timezone=True), nullable=True, default=utcnow, onupdate=utcnow)

    # Relationships
    shop = relationship("Shop", back_populates="items")

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, title={self.title!r})>"

"""Shop SQLAlchemy model"""

from sqlalchemy import Column, Integer, Text, Boolean, Float, ForeignKey, Table
from sqlalchemy.orm import relationship

from .base import Base, SearchableMixin
from .category import Category
from .entity_type import EntityType


shop_categories = Table(
    "shop_categories",
    Base.metadata,
    Column("shop_id", Integer, ForeignKey("shops.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Shop(SearchableMixin, Base):
    """Storefront. Searchable once ``is_approved`` is true.

    Categories are ordered by position so that "the shop's first category"
    is stable across calls.
    """
    __tablename__ = "shops"

    entity_type = EntityType.SHOP

    owner_name = Column(Text, nullable=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    logo_url = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    rating = Column(Float, nullable=False, default=0.0, server_default="0")
    is_approved = Column(Boolean, nullable=False, default=False, server_default="false")

    # Relationships
    categories = relationship(
        Category,
        secondary=shop_categories,
        order_by=(Category.position, Category.id),
    )
    items = relationship("Item", back_populates="shop", cascade="all, delete-orphan")

    @property
    def title(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<Shop(id={self.id}, name={self.name!r})>"

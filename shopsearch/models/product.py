"""Product model: the catalog record the search engine reads."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, Float, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from shopsearch.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from shopsearch.search.documents import slugify

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Product(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Catalog product with a five-level category hierarchy.

    Owned by the catalog subsystem; search only reads it. The category is
    stored flat (one column per level) with ``category_all_levels`` and
    ``category_full_path`` as denormalized copies for querying.
    """

    __tablename__ = "products"

    # Product info
    name: Mapped[str] = mapped_column(String(500), nullable=False, comment="Product name")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Category hierarchy (levels 1..5)
    category_main: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    category_sub: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    category_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category_variant: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category_style: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category_full_path: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Level slugs joined by '/'"
    )
    category_all_levels: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="[{level, name, slug}] for every present level"
    )

    # Variants: [{colorName, colorCode, sizeVariants: [{size|customSize, stock}]}]
    color_variants: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Commerce signals
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    rating_average: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sales_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Sum of size-variant stock")

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        index=True,
        comment="Only 'active' products are searchable"
    )

    __table_args__ = (
        Index("idx_products_category_main_sub", "category_main", "category_sub"),
        Index("idx_products_status_rating", "status", "rating_average"),
        Index("idx_products_status_price", "status", "price"),
    )

    def build_category_structure(self) -> None:
        """Rebuild ``category_all_levels`` and ``category_full_path`` from the level columns."""
        names = [
            self.category_main,
            self.category_sub,
            self.category_type,
            self.category_variant,
            self.category_style,
        ]
        levels = [
            {"level": i + 1, "name": name, "slug": slugify(name)}
            for i, name in enumerate(names)
            if name
        ]
        self.category_all_levels = levels
        self.category_full_path = "/".join(level["slug"] for level in levels) or None

    def calculate_stock(self) -> int:
        """Set ``stock`` to the sum of every size variant's stock."""
        self.stock = sum(
            int(size.get("stock") or 0)
            for color in self.color_variants or []
            for size in color.get("sizeVariants") or []
        )
        return self.stock

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name[:30]}', status='{self.status}')>"

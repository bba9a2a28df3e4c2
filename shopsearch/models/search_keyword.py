"""Search keyword analytics: per-keyword counters and derived scores."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopsearch.models.base import Base, UUIDPrimaryKeyMixin


class SearchKeyword(UUIDPrimaryKeyMixin, Base):
    """Tracks search demand for one normalized keyword.

    Raw counters are incremented atomically; ``popularity_score``,
    ``trending_score`` and ``trending`` are recomputed from them on every
    write and may briefly lag under concurrent writers.
    """

    __tablename__ = "search_keywords"

    # Keyword
    keyword: Mapped[str] = mapped_column(
        String(200),
        unique=True,
        index=True,
        nullable=False,
        comment="Search keyword (trimmed, lowercase)"
    )
    original_keyword: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Display form as first searched"
    )

    # Counters
    search_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="How many times this keyword was searched"
    )
    click_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    result_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Result count of the most recent search"
    )
    weekly_searches: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Searches since the last maintenance reset"
    )

    # Derived scores
    popularity_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    trending_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    trending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Timestamps
    last_searched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
        comment="Last search or click on this keyword"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="First time this keyword was searched"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    related_products: Mapped[list["SearchKeywordProduct"]] = relationship(
        back_populates="keyword",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_search_keywords_search_count", "search_count"),
        Index("idx_search_keywords_trending", "trending", "trending_score"),
        Index("idx_search_keywords_popularity", "popularity_score"),
    )

    @property
    def related_product_ids(self) -> set:
        return {link.product_id for link in self.related_products}

    def __repr__(self) -> str:
        return f"<SearchKeyword(id={self.id}, keyword='{self.keyword}', search_count={self.search_count})>"


class SearchKeywordProduct(Base):
    """Products returned or clicked for a keyword (set semantics via the composite key)."""

    __tablename__ = "search_keyword_products"

    keyword_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("search_keywords.id", ondelete="CASCADE"),
        primary_key=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)

    keyword: Mapped["SearchKeyword"] = relationship(back_populates="related_products")

"""Product query collaborator for the search engine.

Translates the scalar part of a search predicate into SQL, evaluates the
text clauses in process against ``SearchableProduct`` snapshots, and
summarizes candidate sets into facets.
"""

from collections import Counter
from datetime import timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shopsearch.core.exceptions import PersistenceUnavailableError
from shopsearch.models.product import Product
from shopsearch.search import documents as fields
from shopsearch.search.documents import (
    CategoryLevel,
    CategoryPath,
    ColorVariant,
    SearchableProduct,
    SizeVariant,
)
from shopsearch.search.predicate import And, Equals, Predicate, Range, evaluate

logger = structlog.get_logger(__name__)

# Predicate fields that map 1:1 onto product columns
_SCALAR_COLUMNS = {
    fields.STATUS: Product.status,
    fields.PRICE: Product.price,
    fields.RATING: Product.rating_average,
    fields.STOCK: Product.stock,
}

# Candidate orderings understood by the repository
_ORDERINGS = {
    "views": (Product.view_count.desc(), Product.sales_count.desc()),
    "newest": (Product.created_at.desc(),),
    "price-low": (Product.price.asc(),),
    "price-high": (Product.price.desc(),),
}

MAX_FACET_BRANDS = 10
MAX_FACET_CATEGORIES = 8
RATING_BUCKETS = ("0-1", "1-2", "2-3", "3-4", "4-5")


def _scalar_condition(clause: Predicate):
    """Return a SQL condition for a scalar clause, or None if it must run in process."""
    if isinstance(clause, Equals) and clause.field in _SCALAR_COLUMNS:
        return _SCALAR_COLUMNS[clause.field] == clause.value

    if isinstance(clause, Range) and clause.field in _SCALAR_COLUMNS:
        column = _SCALAR_COLUMNS[clause.field]
        conditions = []
        if clause.gte is not None:
            conditions.append(column >= clause.gte)
        if clause.lte is not None:
            conditions.append(column <= clause.lte)
        if clause.gt is not None:
            conditions.append(column > clause.gt)
        return conditions

    return None


def split_predicate(predicate: Predicate) -> Tuple[list, List[Predicate]]:
    """Split a predicate into SQL conditions and residual in-process clauses.

    Only top-level AND clauses on scalar columns are pushed down; anything
    under an OR stays in process.
    """
    clauses = predicate.clauses if isinstance(predicate, And) else (predicate,)
    conditions: list = []
    residual: List[Predicate] = []

    for clause in clauses:
        condition = _scalar_condition(clause)
        if condition is None:
            residual.append(clause)
        elif isinstance(condition, list):
            conditions.extend(condition)
        else:
            conditions.append(condition)

    return conditions, residual


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_text(value: Any) -> Optional[str]:
    """Keep strings, stringify numbers, drop anything else."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def to_searchable(product: Product) -> SearchableProduct:
    """Build the read-only search snapshot of a product row.

    JSON columns written by other systems may be malformed; bad entries
    are skipped and stray scalar types coerced rather than failing the
    whole candidate set.
    """
    all_levels = tuple(
        CategoryLevel(
            level=_as_int(level.get("level")),
            name=level["name"],
            slug=_as_text(level.get("slug")) or fields.slugify(level["name"]),
        )
        for level in _as_list(product.category_all_levels)
        if isinstance(level, dict) and isinstance(level.get("name"), str)
    )

    color_variants = tuple(
        ColorVariant(
            color_name=_as_text(color.get("colorName")),
            color_code=_as_text(color.get("colorCode")),
            size_variants=tuple(
                SizeVariant(
                    size=_as_text(size.get("size")),
                    custom_size=_as_text(size.get("customSize")),
                    stock=_as_int(size.get("stock")),
                )
                for size in _as_list(color.get("sizeVariants"))
                if isinstance(size, dict)
            ),
        )
        for color in _as_list(product.color_variants)
        if isinstance(color, dict)
    )

    created_at = product.created_at
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    return SearchableProduct(
        id=product.id,
        name=product.name or "",
        description=product.description,
        brand=product.brand,
        tags=tuple(t for t in _as_list(product.tags) if isinstance(t, str)),
        category=CategoryPath(
            main=product.category_main,
            sub=product.category_sub,
            type=product.category_type,
            variant=product.category_variant,
            style=product.category_style,
            all_levels=all_levels,
            full_path=product.category_full_path,
        ),
        color_variants=color_variants,
        price=float(product.price or 0),
        rating_average=float(product.rating_average or 0),
        rating_count=product.rating_count or 0,
        view_count=product.view_count or 0,
        sales_count=product.sales_count or 0,
        stock=product.stock or 0,
        status=product.status,
        created_at=created_at,
    )


def summarize_facets(products: Sequence[SearchableProduct]) -> Dict[str, Any]:
    """Summarize a candidate set for result filtering.

    Returns:
        dict with 'brands' and 'categories' (name/count lists, most common
        first), 'price_range' ({min, max}, zeros when empty) and
        'rating_distribution' (bucket -> count, including 'unrated')
    """
    brands = Counter(p.brand for p in products if p.brand)
    categories = Counter(p.category.main for p in products if p.category.main)
    prices = [p.price for p in products]

    ratings = {bucket: 0 for bucket in RATING_BUCKETS}
    ratings["unrated"] = 0
    for product in products:
        if not product.rating_count:
            ratings["unrated"] += 1
            continue
        index = min(int(product.rating_average), len(RATING_BUCKETS) - 1)
        ratings[RATING_BUCKETS[max(index, 0)]] += 1

    return {
        "brands": [
            {"name": name, "count": count}
            for name, count in brands.most_common(MAX_FACET_BRANDS)
        ],
        "categories": [
            {"name": name, "count": count}
            for name, count in categories.most_common(MAX_FACET_CATEGORIES)
        ],
        "price_range": {
            "min": min(prices) if prices else 0,
            "max": max(prices) if prices else 0,
        },
        "rating_distribution": ratings,
    }


class ProductRepository:
    """Reads searchable products for the search and suggestion services."""

    def __init__(self, db: AsyncSession):
        """Initialize product repository.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="product_repository")

    async def find(
        self,
        predicate: Predicate,
        order_by: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[SearchableProduct], int]:
        """Return products satisfying a predicate.

        Args:
            predicate: Search predicate; scalar top-level clauses run in SQL
            order_by: Optional candidate ordering ("views", "newest",
                "price-low", "price-high"); insertion order otherwise
            skip: Matching products to skip
            limit: Maximum products to return (None for all)

        Returns:
            Tuple of (matching products, total matches before skip/limit)

        Raises:
            PersistenceUnavailableError: If the database query fails
        """
        conditions, residual = split_predicate(predicate)

        query = select(Product).where(*conditions)
        query = query.order_by(*_ORDERINGS.get(order_by, ()), Product.id)

        try:
            result = await self.db.execute(query)
            rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error("product_query_failed", error=str(e))
            raise PersistenceUnavailableError("product query", str(e)) from e

        remainder = And(clauses=tuple(residual))
        matches = [
            product
            for product in map(to_searchable, rows)
            if evaluate(remainder, product)
        ]

        total = len(matches)
        end = None if limit is None else skip + limit
        page = matches[skip:end]

        self.logger.debug(
            "products_found",
            scanned=len(rows),
            matched=total,
            returned=len(page),
        )

        return page, total

    async def brand_counts(self, predicate: Predicate, limit: int = 2) -> List[Tuple[str, int]]:
        """Brands of the products matching a predicate, most products first."""
        products, _ = await self.find(predicate)
        counts = Counter(p.brand for p in products if p.brand)
        return counts.most_common(limit)

    async def most_viewed_names(self, limit: int = 10) -> List[str]:
        """Names of the most viewed active products."""
        try:
            result = await self.db.execute(
                select(Product.name)
                .where(Product.status == "active")
                .order_by(Product.view_count.desc(), Product.sales_count.desc())
                .limit(limit)
            )
        except SQLAlchemyError as e:
            self.logger.error("product_name_query_failed", error=str(e))
            raise PersistenceUnavailableError("product name query", str(e)) from e
        return list(result.scalars().all())

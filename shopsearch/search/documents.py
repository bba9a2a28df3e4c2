"""Read-only product projection consumed by the search engine.

The category hierarchy is a fixed five-slot structure (main, sub, type,
variant, style) rather than a tree; ``all_levels`` and ``full_path`` are the
denormalized forms the catalog keeps alongside it.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

CATEGORY_LEVEL_NAMES: Tuple[str, ...] = ("main", "sub", "type", "variant", "style")


def slugify(name: str) -> str:
    """Lowercase a label and collapse runs of non-alphanumerics to '-'."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower())


@dataclass(frozen=True)
class CategoryLevel:
    """One entry of the flattened category hierarchy."""

    level: int  # 1..5
    name: str
    slug: str


@dataclass(frozen=True)
class CategoryPath:
    """Five optional category levels plus their denormalized forms."""

    main: Optional[str] = None
    sub: Optional[str] = None
    type: Optional[str] = None
    variant: Optional[str] = None
    style: Optional[str] = None
    all_levels: Tuple[CategoryLevel, ...] = ()
    full_path: Optional[str] = None

    @classmethod
    def from_levels(cls, *names: Optional[str]) -> "CategoryPath":
        """Build a path from up to five level names, deriving slugs and path.

        Levels stop at the first missing name, so the result is always
        contiguous from level 1.
        """
        names = tuple(names[: len(CATEGORY_LEVEL_NAMES)])
        contiguous: List[str] = []
        for name in names:
            if not name:
                break
            contiguous.append(name)

        levels = tuple(
            CategoryLevel(level=i + 1, name=name, slug=slugify(name))
            for i, name in enumerate(contiguous)
        )
        padded = contiguous + [None] * (len(CATEGORY_LEVEL_NAMES) - len(contiguous))
        return cls(
            *padded,
            all_levels=levels,
            full_path="/".join(level.slug for level in levels) or None,
        )

    def level(self, name: str) -> Optional[str]:
        return getattr(self, name)


@dataclass(frozen=True)
class SizeVariant:
    size: Optional[str] = None
    custom_size: Optional[str] = None
    stock: int = 0


@dataclass(frozen=True)
class ColorVariant:
    color_name: Optional[str] = None
    color_code: Optional[str] = None
    size_variants: Tuple[SizeVariant, ...] = ()


@dataclass(frozen=True)
class SearchableProduct:
    """Immutable snapshot of a product as seen by one search request."""

    id: Any
    name: str = ""
    description: Optional[str] = None
    brand: Optional[str] = None
    tags: Tuple[str, ...] = ()
    category: CategoryPath = field(default_factory=CategoryPath)
    color_variants: Tuple[ColorVariant, ...] = ()
    price: float = 0.0
    rating_average: float = 0.0
    rating_count: int = 0
    view_count: int = 0
    sales_count: int = 0
    stock: int = 0
    status: str = "active"
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Searchable field names
# ---------------------------------------------------------------------------
NAME = "name"
DESCRIPTION = "description"
BRAND = "brand"
TAGS = "tags"
CATEGORY_MAIN = "category.main"
CATEGORY_SUB = "category.sub"
CATEGORY_TYPE = "category.type"
CATEGORY_VARIANT = "category.variant"
CATEGORY_STYLE = "category.style"
CATEGORY_ALL_LEVELS = "category.all_levels.name"
COLOR_NAME = "color_variants.color_name"
STATUS = "status"
PRICE = "price"
RATING = "rating.average"
STOCK = "stock"


def _one(value: Any) -> List[Any]:
    return [] if value is None else [value]


_FIELD_ACCESSORS: Dict[str, Callable[[SearchableProduct], List[Any]]] = {
    NAME: lambda p: _one(p.name),
    DESCRIPTION: lambda p: _one(p.description),
    BRAND: lambda p: _one(p.brand),
    TAGS: lambda p: list(p.tags or ()),
    CATEGORY_MAIN: lambda p: _one(p.category.main),
    CATEGORY_SUB: lambda p: _one(p.category.sub),
    CATEGORY_TYPE: lambda p: _one(p.category.type),
    CATEGORY_VARIANT: lambda p: _one(p.category.variant),
    CATEGORY_STYLE: lambda p: _one(p.category.style),
    CATEGORY_ALL_LEVELS: lambda p: [lvl.name for lvl in p.category.all_levels or ()],
    COLOR_NAME: lambda p: [cv.color_name for cv in p.color_variants or () if cv.color_name],
    STATUS: lambda p: _one(p.status),
    PRICE: lambda p: _one(p.price),
    RATING: lambda p: _one(p.rating_average),
    STOCK: lambda p: _one(p.stock),
}


def field_values(product: SearchableProduct, field_name: str) -> List[Any]:
    """Return every value stored under a searchable field of a product.

    Absent values produce an empty list; unknown field names raise KeyError.
    """
    return _FIELD_ACCESSORS[field_name](product)

"""Product Pydantic schemas for search responses."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from shopsearch.schemas.common import CamelModel
from shopsearch.search.scoring import ScoredProduct


class SizeVariantResponse(CamelModel):
    size: Optional[str] = None
    custom_size: Optional[str] = None
    stock: int = 0


class ColorVariantResponse(CamelModel):
    color_name: Optional[str] = None
    color_code: Optional[str] = None
    size_variants: List[SizeVariantResponse] = []


class CategoryLevelResponse(CamelModel):
    level: int
    name: str
    slug: str


class CategoryPathResponse(CamelModel):
    """Five-level category of a product."""

    main: Optional[str] = None
    sub: Optional[str] = None
    type: Optional[str] = None
    variant: Optional[str] = None
    style: Optional[str] = None
    all_levels: List[CategoryLevelResponse] = []
    full_path: Optional[str] = None


class RatingResponse(CamelModel):
    average: float = 0.0
    count: int = 0


class ProductResponse(CamelModel):
    """Product as returned by search, with its relevance score."""

    id: Any
    name: str
    description: Optional[str] = None
    brand: Optional[str] = None
    tags: List[str] = []
    category: CategoryPathResponse
    color_variants: List[ColorVariantResponse] = []
    price: float
    rating: RatingResponse
    view_count: int = 0
    sales_count: int = 0
    stock: int = 0
    status: str
    created_at: Optional[datetime] = None
    relevance_score: float = Field(0.0, ge=0)

    @classmethod
    def from_scored(cls, scored: ScoredProduct) -> "ProductResponse":
        product = scored.product
        return cls(
            id=str(product.id),
            name=product.name,
            description=product.description,
            brand=product.brand,
            tags=list(product.tags),
            category=CategoryPathResponse.model_validate(product.category),
            color_variants=[
                ColorVariantResponse.model_validate(cv) for cv in product.color_variants
            ],
            price=product.price,
            rating=RatingResponse(average=product.rating_average, count=product.rating_count),
            view_count=product.view_count,
            sales_count=product.sales_count,
            stock=product.stock,
            status=product.status,
            created_at=product.created_at,
            relevance_score=round(scored.score, 4),
        )

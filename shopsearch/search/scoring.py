"""Relevance scoring and result ordering.

The relevance score is a weighted additive model evaluated independently per
product: text matches by field (most prominent fields weigh most), category
matches by level (most general level weighs most), then popularity and stock
signals. Scoring is pure, so a given (product, tokens) pair always scores the
same.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Pattern, Sequence, Tuple

import structlog

from shopsearch.search.documents import SearchableProduct
from shopsearch.search.normalizer import compile_term, term_variants
from shopsearch.search.vocabulary import (
    CATEGORY_NORMALIZATION_MAP,
    PRODUCT_NAME_NORMALIZATION_MAP,
)

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Field match weights
# ---------------------------------------------------------------------------
NAME_ANY_WEIGHT = 50.0
NAME_ALL_WEIGHT = 30.0  # On top of NAME_ANY_WEIGHT
BRAND_WEIGHT = 20.0
TAG_WEIGHT = 25.0
COLOR_WEIGHT = 15.0
DESCRIPTION_WEIGHT = 8.0

# Category level weights, most general level first
CATEGORY_LEVEL_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("main", 15.0),
    ("sub", 12.0),
    ("type", 10.0),
    ("variant", 8.0),
    ("style", 6.0),
)
ALL_LEVELS_WEIGHT = 5.0

# ---------------------------------------------------------------------------
# Popularity and availability signals
# ---------------------------------------------------------------------------
RATING_WEIGHT = 5.0  # Per rating point (0-5)
SALES_WEIGHT = 0.1
VIEWS_WEIGHT = 0.02
IN_STOCK_BONUS = 5.0

SORT_MODES = ("relevance", "price-low", "price-high", "rating", "popularity", "newest")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class ScoredProduct:
    """A product paired with its relevance score."""

    product: SearchableProduct
    score: float


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _token_patterns(tokens: Sequence[str]) -> List[List[Pattern[str]]]:
    """One pattern list per token: raw form plus normalized forms."""
    return [
        [
            compile_term(term)
            for term in term_variants(
                token, PRODUCT_NAME_NORMALIZATION_MAP, CATEGORY_NORMALIZATION_MAP
            )
        ]
        for token in tokens
    ]


def _hits(value: Optional[str], patterns: List[Pattern[str]]) -> bool:
    if not isinstance(value, str) or not value:
        return False
    return any(p.search(value) for p in patterns)


def _any_token(value: Optional[str], token_patterns: List[List[Pattern[str]]]) -> bool:
    return any(_hits(value, patterns) for patterns in token_patterns)


def _any_value(values: Iterable[Optional[str]], token_patterns: List[List[Pattern[str]]]) -> bool:
    return any(_any_token(value, token_patterns) for value in values)


def calculate_relevance_score(product: SearchableProduct, tokens: Sequence[str]) -> float:
    """Score how well a product matches the query tokens.

    Args:
        product: Candidate product snapshot
        tokens: Query tokens from the tokenizer

    Returns:
        Non-negative score; higher means more relevant
    """
    token_patterns = _token_patterns(tokens)
    score = 0.0

    if token_patterns:
        if _any_token(product.name, token_patterns):
            score += NAME_ANY_WEIGHT
            if all(_hits(product.name, patterns) for patterns in token_patterns):
                score += NAME_ALL_WEIGHT

        if _any_token(product.brand, token_patterns):
            score += BRAND_WEIGHT

        if _any_value(product.tags or (), token_patterns):
            score += TAG_WEIGHT

        category = product.category
        for level_name, weight in CATEGORY_LEVEL_WEIGHTS:
            if _any_token(category.level(level_name), token_patterns):
                score += weight
        if _any_value((lvl.name for lvl in category.all_levels or ()), token_patterns):
            score += ALL_LEVELS_WEIGHT

        if _any_value((cv.color_name for cv in product.color_variants or ()), token_patterns):
            score += COLOR_WEIGHT

        if _any_token(product.description, token_patterns):
            score += DESCRIPTION_WEIGHT

    score += _number(product.rating_average) * RATING_WEIGHT
    score += _number(product.sales_count) * SALES_WEIGHT
    score += _number(product.view_count) * VIEWS_WEIGHT

    if _number(product.stock) > 0:
        score += IN_STOCK_BONUS

    return max(score, 0.0)


def score_products(
    products: Iterable[SearchableProduct],
    tokens: Sequence[str],
) -> List[ScoredProduct]:
    """Score a batch of products.

    A product whose data breaks scoring gets a zero score instead of
    failing the whole batch.
    """
    scored = []
    for product in products:
        try:
            score = calculate_relevance_score(product, tokens)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(
                "relevance_scoring_failed",
                product_id=str(product.id),
                error=str(e),
            )
            score = 0.0
        scored.append(ScoredProduct(product=product, score=score))
    return scored


def _created(product: SearchableProduct) -> datetime:
    created = product.created_at
    if created is None:
        return _EPOCH
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def sort_products(scored: List[ScoredProduct], sort_by: str = "relevance") -> List[ScoredProduct]:
    """Order scored products by the requested sort mode.

    Explicit modes ignore the relevance score. Relevance ties fall back to
    rating, then recency. Unknown modes sort by relevance.
    """
    if sort_by == "price-low":
        return sorted(scored, key=lambda s: _number(s.product.price))
    if sort_by == "price-high":
        return sorted(scored, key=lambda s: _number(s.product.price), reverse=True)
    if sort_by == "rating":
        return sorted(
            scored,
            key=lambda s: (_number(s.product.rating_average), _number(s.product.rating_count)),
            reverse=True,
        )
    if sort_by == "popularity":
        return sorted(
            scored,
            key=lambda s: (_number(s.product.sales_count), _number(s.product.view_count)),
            reverse=True,
        )
    if sort_by == "newest":
        return sorted(scored, key=lambda s: _created(s.product), reverse=True)
    return sorted(
        scored,
        key=lambda s: (s.score, _number(s.product.rating_average), _created(s.product)),
        reverse=True,
    )

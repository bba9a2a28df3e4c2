"""Build search predicates from tokens and detected facets.

Two shapes are produced:

* **facet-constrained**: when both a primary category (men, women, ...) and a
  product type (shirt, phone, ...) are detected, a product must sit in the
  category AND carry the type somewhere in its category hierarchy;
* **open**: otherwise, tokens are matched against every text field. By
  default every token must match some field (``match_mode="all"``); the
  legacy ``"any"`` mode accepts a product when any field matches any token.

Explicit caller filters are ANDed on top, and a relaxed substring predicate
is available as a fallback when the primary predicate finds nothing.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from shopsearch.search import documents as fields
from shopsearch.search.normalizer import (
    build_word_boundary_patterns,
    compile_substring,
    compile_term,
)
from shopsearch.search.predicate import (
    Equals,
    Predicate,
    Range,
    all_of,
    any_of,
    match,
)
from shopsearch.search.tokenizer import PrimaryCategory
from shopsearch.search.vocabulary import (
    CATEGORY_NORMALIZATION_MAP,
    PRODUCT_NAME_NORMALIZATION_MAP,
)

ACTIVE_STATUS = "active"
MATCH_MODES = ("all", "any")

# Fields searched by the open and fallback predicates
OPEN_PRODUCT_FIELDS = (
    fields.NAME,
    fields.DESCRIPTION,
    fields.BRAND,
    fields.TAGS,
    fields.COLOR_NAME,
)
OPEN_CATEGORY_FIELDS = (
    fields.CATEGORY_MAIN,
    fields.CATEGORY_SUB,
    fields.CATEGORY_TYPE,
    fields.CATEGORY_VARIANT,
    fields.CATEGORY_STYLE,
    fields.CATEGORY_ALL_LEVELS,
)


@dataclass(frozen=True)
class SearchFilters:
    """Explicit filters supplied alongside the free-text query.

    A value of ``"all"`` for any category filter means "no filter".
    """

    brand: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_rating: Optional[float] = None
    in_stock: bool = False
    category: Optional[str] = None
    main_category: Optional[str] = None
    sub_category: Optional[str] = None

    @property
    def has_filters(self) -> bool:
        return bool(
            _active(self.category)
            or _active(self.main_category)
            or _active(self.sub_category)
            or _active(self.brand)
            or self.min_price is not None
            or self.max_price is not None
            or self.min_rating is not None
            or self.in_stock
        )


def _active(value: Optional[str]) -> bool:
    return bool(value and value.strip()) and value.strip().lower() != "all"


def _active_status() -> Predicate:
    return Equals(fields.STATUS, ACTIVE_STATUS)


def category_group(primary_category: PrimaryCategory) -> Predicate:
    """OR of ``category.main`` against every synonym of the category."""
    return any_of(
        *(match(fields.CATEGORY_MAIN, [compile_term(kw)]) for kw in primary_category.synonyms)
    )


def product_type_group(product_type: str) -> Predicate:
    """OR of every category level against the product type."""
    patterns = build_word_boundary_patterns([product_type], PRODUCT_NAME_NORMALIZATION_MAP)
    return any_of(*(match(f, patterns) for f in OPEN_CATEGORY_FIELDS))


def _token_fields(token: str) -> List[Predicate]:
    product_patterns = build_word_boundary_patterns([token], PRODUCT_NAME_NORMALIZATION_MAP)
    category_patterns = build_word_boundary_patterns(
        [token], CATEGORY_NORMALIZATION_MAP
    ) + product_patterns
    return [match(f, product_patterns) for f in OPEN_PRODUCT_FIELDS] + [
        match(f, category_patterns) for f in OPEN_CATEGORY_FIELDS
    ]


def open_predicate(tokens: Sequence[str], match_mode: str = "all") -> Predicate:
    """Match tokens against every text field.

    ``"all"``: AND across tokens, OR across fields per token.
    ``"any"``: a single OR of every field against every token.
    """
    if match_mode == "any":
        clauses: List[Predicate] = []
        for token in tokens:
            clauses.extend(_token_fields(token))
        return any_of(*clauses)
    return all_of(*(any_of(*_token_fields(token)) for token in tokens))


def build_filter(
    tokens: Sequence[str],
    primary_category: Optional[PrimaryCategory] = None,
    product_type: Optional[str] = None,
    match_mode: str = "all",
) -> Predicate:
    """Build the primary search predicate for a tokenized query.

    Args:
        tokens: Non-empty token list from the tokenizer
        primary_category: Detected primary category facet, if any
        product_type: Detected product type token, if any
        match_mode: "all" (every token must match) or "any" (legacy OR)

    Returns:
        Predicate that always requires an active status
    """
    if match_mode not in MATCH_MODES:
        raise ValueError(f"Unknown match mode: {match_mode}")

    if primary_category and product_type:
        return all_of(
            _active_status(),
            category_group(primary_category),
            product_type_group(product_type),
        )

    if primary_category:
        remaining = [t for t in tokens if t not in primary_category.synonyms]
        if not remaining:
            # Bare category keyword: everything in that category
            return all_of(_active_status(), category_group(primary_category))

    if product_type and not primary_category:
        return all_of(_active_status(), open_predicate([product_type], match_mode))

    return all_of(_active_status(), open_predicate(tokens, match_mode))


def build_fallback_filter(tokens: Sequence[str]) -> Predicate:
    """Relaxed predicate: any field contains any token as a plain substring."""
    pattern = compile_substring(tokens)
    return all_of(
        _active_status(),
        any_of(*(match(f, [pattern]) for f in OPEN_PRODUCT_FIELDS + OPEN_CATEGORY_FIELDS)),
    )


def apply_explicit_filters(predicate: Predicate, filters: Optional[SearchFilters]) -> Predicate:
    """AND the caller's explicit filters onto a predicate."""
    if filters is None:
        return predicate

    clauses: List[Predicate] = [predicate]

    if _active(filters.main_category):
        clauses.append(match(fields.CATEGORY_MAIN, [compile_term(filters.main_category.strip())]))
    if _active(filters.sub_category):
        clauses.append(match(fields.CATEGORY_SUB, [compile_term(filters.sub_category.strip())]))
    if _active(filters.category):
        pattern = compile_term(filters.category.strip())
        clauses.append(any_of(*(match(f, [pattern]) for f in OPEN_CATEGORY_FIELDS)))

    if _active(filters.brand):
        clauses.append(match(fields.BRAND, [compile_term(filters.brand.strip())]))

    if filters.min_price is not None or filters.max_price is not None:
        clauses.append(Range(fields.PRICE, gte=filters.min_price, lte=filters.max_price))

    if filters.min_rating is not None:
        clauses.append(Range(fields.RATING, gte=filters.min_rating))

    if filters.in_stock:
        clauses.append(Range(fields.STOCK, gt=0))

    if len(clauses) == 1:
        return predicate
    return all_of(*clauses)

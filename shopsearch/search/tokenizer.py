"""Query tokenization and facet detection."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from shopsearch.search.vocabulary import (
    PRIMARY_CATEGORY_KEYWORDS,
    PRODUCT_TYPE_KEYWORDS,
    STOP_WORDS,
)


@dataclass(frozen=True)
class PrimaryCategory:
    """A primary category facet detected in a query."""

    category: str  # Canonical name, e.g. "men"
    matched_keyword: str  # Token that triggered the match, e.g. "mens"

    @property
    def synonyms(self) -> Sequence[str]:
        return PRIMARY_CATEGORY_KEYWORDS[self.category]


@dataclass(frozen=True)
class ParsedQuery:
    """A tokenized query together with its detected facets."""

    raw: str
    tokens: List[str] = field(default_factory=list)
    primary_category: Optional[PrimaryCategory] = None
    product_type: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.tokens


def tokenize(query: Optional[str]) -> List[str]:
    """Split a query into lowercase tokens with stop-words removed.

    Empty or whitespace-only input yields an empty list.
    """
    if not query:
        return []
    return [word for word in query.lower().split() if word not in STOP_WORDS]


def detect_primary_category(tokens: Sequence[str]) -> Optional[PrimaryCategory]:
    """Find the primary category facet in the tokens.

    Categories are tried in vocabulary order, not token order: for
    "girls shoes for men" the result is "men".
    """
    token_set = set(tokens)
    for category, keywords in PRIMARY_CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            if keyword in token_set:
                return PrimaryCategory(category=category, matched_keyword=keyword)
    return None


def detect_product_type(tokens: Sequence[str]) -> Optional[str]:
    """Return the first token (in token order) that names a product type."""
    for token in tokens:
        if token in PRODUCT_TYPE_KEYWORDS:
            return token
    return None


def parse_query(query: Optional[str]) -> ParsedQuery:
    """Tokenize a query and detect its primary category and product type."""
    raw = (query or "").strip()
    tokens = tokenize(raw)
    return ParsedQuery(
        raw=raw,
        tokens=tokens,
        primary_category=detect_primary_category(tokens),
        product_type=detect_product_type(tokens),
    )

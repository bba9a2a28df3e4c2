"""Term normalization and word-boundary pattern building."""

import re
from typing import Iterable, List, Mapping, Pattern

from shopsearch.search.vocabulary import SYNONYMS_MAP

# Hyphens count as word characters so "shirt" never matches inside "t-shirt".
_BOUNDARY_BEFORE = r"(?<![\w-])"
_BOUNDARY_AFTER = r"(?![\w-])"
# Catalog labels are usually plural ("Shirts", "Watches").
_PLURAL_SUFFIX = r"(?:e?s)?"


def normalize(term: str, mapping: Mapping[str, str]) -> str:
    """Map a term to its canonical form, falling back to the term itself."""
    lowered = term.lower().strip()
    return mapping.get(lowered, lowered)


def term_variants(token: str, *mappings: Mapping[str, str]) -> List[str]:
    """Return the raw token followed by its normalized forms, deduplicated."""
    variants = [token.lower().strip()]
    for mapping in mappings:
        normalized = normalize(token, mapping)
        if normalized not in variants:
            variants.append(normalized)
    return [v for v in variants if v]


def compile_term(term: str) -> Pattern[str]:
    """Compile a case-insensitive word-boundary pattern for a single term.

    The term is escaped first, so query text is never interpreted as
    regex syntax.
    """
    return re.compile(
        f"{_BOUNDARY_BEFORE}{re.escape(term)}{_PLURAL_SUFFIX}{_BOUNDARY_AFTER}",
        re.IGNORECASE,
    )


def compile_substring(terms: Iterable[str]) -> Pattern[str]:
    """Compile a relaxed, case-insensitive substring alternation of terms."""
    escaped = [re.escape(t) for t in terms if t]
    return re.compile("|".join(escaped) if escaped else r"(?!)", re.IGNORECASE)


def build_word_boundary_patterns(
    tokens: Iterable[str],
    mapping: Mapping[str, str],
) -> List[Pattern[str]]:
    """Build word-boundary patterns for tokens and their normalized forms.

    Each token contributes its raw form and its normalized form from
    ``mapping``. Duplicates are dropped, keeping first-seen order.
    """
    tokens = list(tokens)
    terms: List[str] = []
    for term in [*tokens, *(normalize(t, mapping) for t in tokens)]:
        term = term.lower().strip()
        if term and term not in terms:
            terms.append(term)
    return [compile_term(t) for t in terms]


def expand_synonyms(tokens: Iterable[str]) -> List[str]:
    """Return tokens followed by their suggestion synonyms, deduplicated."""
    expanded: List[str] = []
    for token in tokens:
        for term in (token, *SYNONYMS_MAP.get(token.lower().strip(), ())):
            if term not in expanded:
                expanded.append(term)
    return expanded

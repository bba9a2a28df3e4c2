"""Structured boolean predicates over searchable product fields.

A predicate is a small immutable tree that can be evaluated in process
against a ``SearchableProduct`` or partially translated into a database
query by the product repository. Text clauses hold pre-compiled patterns.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Pattern, Tuple, Union

import structlog

from shopsearch.search.documents import SearchableProduct, field_values

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Match:
    """True when any value of ``field`` matches any of ``patterns``."""

    field: str
    patterns: Tuple[Pattern[str], ...]


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    """Numeric bounds; ``None`` bounds are ignored."""

    field: str
    gte: Optional[float] = None
    lte: Optional[float] = None
    gt: Optional[float] = None


@dataclass(frozen=True)
class And:
    clauses: Tuple["Predicate", ...]


@dataclass(frozen=True)
class Or:
    clauses: Tuple["Predicate", ...]


Predicate = Union[Match, Equals, Range, And, Or]


def match(field: str, patterns: Iterable[Pattern[str]]) -> Match:
    return Match(field=field, patterns=tuple(patterns))


def all_of(*clauses: Predicate) -> And:
    """AND the clauses together, flattening nested ANDs."""
    flat = []
    for clause in clauses:
        if isinstance(clause, And):
            flat.extend(clause.clauses)
        else:
            flat.append(clause)
    return And(clauses=tuple(flat))


def any_of(*clauses: Predicate) -> Or:
    return Or(clauses=tuple(clauses))


def _matches_text(values: Iterable[Any], patterns: Tuple[Pattern[str], ...]) -> bool:
    for value in values:
        if not isinstance(value, str):
            continue
        if any(p.search(value) for p in patterns):
            return True
    return False


def _in_range(values: Iterable[Any], clause: Range) -> bool:
    for value in values:
        number = float(value)
        if clause.gte is not None and number < clause.gte:
            continue
        if clause.lte is not None and number > clause.lte:
            continue
        if clause.gt is not None and number <= clause.gt:
            continue
        return True
    return False


def _evaluate(predicate: Predicate, product: SearchableProduct) -> bool:
    if isinstance(predicate, And):
        return all(_evaluate(c, product) for c in predicate.clauses)
    if isinstance(predicate, Or):
        return any(_evaluate(c, product) for c in predicate.clauses)
    if isinstance(predicate, Match):
        return _matches_text(field_values(product, predicate.field), predicate.patterns)
    if isinstance(predicate, Equals):
        return predicate.value in field_values(product, predicate.field)
    if isinstance(predicate, Range):
        return _in_range(field_values(product, predicate.field), predicate)
    raise NotImplementedError(f"Unsupported predicate node: {type(predicate).__name__}")


def evaluate(predicate: Predicate, product: SearchableProduct) -> bool:
    """Evaluate a predicate against one product.

    Malformed product data counts as a non-match for that product only.
    """
    try:
        return _evaluate(predicate, product)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(
            "predicate_evaluation_failed",
            product_id=str(getattr(product, "id", None)),
            error=str(e),
        )
        return False

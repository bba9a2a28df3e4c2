"""Popularity and trending formulas for search keywords.

Both scores are derived caches: they are pure functions of a keyword's
counters and timestamps at the moment they are computed.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

# ---------------------------------------------------------------------------
# Trending window parameters
# ---------------------------------------------------------------------------
TRENDING_WINDOW = timedelta(days=7)
TRENDING_THRESHOLD = 10.0  # trending_score must exceed this to flag a keyword
STALE_AFTER = timedelta(days=30)  # Silence after which weekly counters reset

# ---------------------------------------------------------------------------
# Popularity weights
# ---------------------------------------------------------------------------
SEARCH_WEIGHT = 2.0
CLICK_WEIGHT = 5.0

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class TrendingResult:
    score: float
    trending: bool


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def calculate_popularity_score(
    search_count: int,
    click_count: int,
    created_at: datetime,
    now: datetime,
) -> float:
    """Click-weighted search demand averaged over the keyword's age.

    popularity = ((searches*2 + clicks*5) / max(1, age_days)) * (1 + click_rate)

    A keyword searched heavily long ago scores lower than one searched
    equally often recently.
    """
    age_days = max(1.0, (ensure_utc(now) - ensure_utc(created_at)) / _ONE_DAY)
    click_rate = click_count / search_count if search_count > 0 else 0.0
    base = (search_count * SEARCH_WEIGHT + click_count * CLICK_WEIGHT) / age_days
    return base * (1 + click_rate)


def calculate_trending_score(
    weekly_searches: int,
    last_searched_at: datetime,
    now: datetime,
) -> TrendingResult:
    """Weekly search volume decayed linearly over the trending window.

    Outside the window the score is zero; there is no partial credit.
    """
    elapsed = ensure_utc(now) - ensure_utc(last_searched_at)
    if elapsed > TRENDING_WINDOW:
        return TrendingResult(score=0.0, trending=False)

    recency = 1 - max(elapsed, timedelta(0)) / TRENDING_WINDOW
    score = weekly_searches * recency
    return TrendingResult(score=score, trending=score > TRENDING_THRESHOLD)

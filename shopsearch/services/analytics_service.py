"""Search analytics: per-keyword counters, popularity and trending.

Counters are changed with single atomic statements (upsert / UPDATE ...
SET n = n + 1) so concurrent searches never lose increments. The derived
scores are recomputed from the fresh row afterwards and written back; under
concurrent writers they are last-write-wins and are corrected by
``refresh_derived_scores``.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from shopsearch.config import settings
from shopsearch.core.retry import db_write_retry
from shopsearch.db.utils import dialect_insert
from shopsearch.models.search_keyword import SearchKeyword, SearchKeywordProduct
from shopsearch.search.keyword_metrics import (
    STALE_AFTER,
    TRENDING_WINDOW,
    calculate_popularity_score,
    calculate_trending_score,
)

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

# Look-back windows of the search report; "all" has none
REPORT_PERIODS: Dict[str, Optional[timedelta]] = {
    "day": timedelta(days=1),
    "week": TRENDING_WINDOW,
    "month": STALE_AFTER,
    "all": None,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        logger.warning("invalid_product_id_ignored", product_id=str(value))
        return None


def normalize_keyword(keyword: Optional[str]) -> str:
    """Canonical keyword form: trimmed and lowercased."""
    return (keyword or "").strip().lower()


@dataclass
class SearchReport:
    """Search demand over one reporting period."""

    period: str
    top_searches: List[SearchKeyword]
    trending_searches: List[SearchKeyword]
    total_searches: int = 0
    total_clicks: int = 0
    unique_searches: int = 0


class AnalyticsService:
    """Records search demand and ranks keywords by popularity and trend.

    Args:
        db: Async database session
        clock: Returns the current time; defaults to UTC now
    """

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or _utcnow
        self.logger = logger.bind(service="analytics_service")

    async def _load(self, keyword: str) -> Optional[SearchKeyword]:
        result = await self.db.execute(
            select(SearchKeyword)
            .options(selectinload(SearchKeyword.related_products))
            .where(SearchKeyword.keyword == keyword)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _link_products(self, keyword_id: uuid.UUID, product_ids: Iterable) -> None:
        """Add products to a keyword's related set; existing links are kept."""
        ids = [pid for pid in (_as_uuid(p) for p in product_ids) if pid is not None]
        ids = list(dict.fromkeys(ids))[: settings.ANALYTICS_MAX_RELATED_PRODUCTS]
        if not ids:
            return

        stmt = dialect_insert(self.db, SearchKeywordProduct).values(
            [{"keyword_id": keyword_id, "product_id": pid} for pid in ids]
        )
        await self.db.execute(stmt.on_conflict_do_nothing(
            index_elements=[SearchKeywordProduct.keyword_id, SearchKeywordProduct.product_id],
        ))

    def _refresh_scores(self, record: SearchKeyword, now: datetime, trending: bool = True) -> None:
        record.popularity_score = calculate_popularity_score(
            record.search_count,
            record.click_count,
            record.created_at,
            now,
        )
        if trending:
            result = calculate_trending_score(record.weekly_searches, record.last_searched_at, now)
            record.trending_score = result.score
            record.trending = result.trending

    async def record_search(
        self,
        keyword: str,
        result_count: int = 0,
        product_ids: Iterable = (),
    ) -> Optional[SearchKeyword]:
        """Record one search for a keyword.

        Creates the keyword on first use. Repeated searches increment the
        search and weekly counters, overwrite the result count and add the
        returned products to the related set.

        Args:
            keyword: Query as typed; normalized before storage
            result_count: Number of results the search returned
            product_ids: Ids of products returned by the search

        Returns:
            Updated SearchKeyword, or None for a blank keyword
        """
        normalized = normalize_keyword(keyword)
        if not normalized:
            return None

        now = self.clock()
        stmt = dialect_insert(self.db, SearchKeyword).values(
            id=uuid.uuid4(),
            keyword=normalized,
            original_keyword=keyword.strip(),
            search_count=1,
            click_count=0,
            result_count=result_count,
            weekly_searches=1,
            popularity_score=0.0,
            trending_score=0.0,
            trending=False,
            last_searched_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[SearchKeyword.keyword],
            set_={
                "search_count": SearchKeyword.search_count + 1,
                "weekly_searches": SearchKeyword.weekly_searches + 1,
                "result_count": result_count,
                "last_searched_at": now,
                "updated_at": now,
            },
        )
        await self.db.execute(stmt)

        keyword_id = (await self.db.execute(
            select(SearchKeyword.id).where(SearchKeyword.keyword == normalized)
        )).scalar_one()
        await self._link_products(keyword_id, product_ids)

        record = await self._load(normalized)
        self._refresh_scores(record, now)
        await self.db.commit()

        self.logger.debug(
            "search_recorded",
            keyword=normalized,
            search_count=record.search_count,
            result_count=result_count,
        )

        return record

    async def record_click(
        self,
        keyword: str,
        product_id=None,
    ) -> Optional[SearchKeyword]:
        """Record a result click for a previously searched keyword.

        Only popularity is recomputed; trending stays driven by searches.

        Returns:
            Updated SearchKeyword, or None if the keyword was never searched
        """
        normalized = normalize_keyword(keyword)
        if not normalized:
            return None

        now = self.clock()
        result = await self.db.execute(
            update(SearchKeyword)
            .where(SearchKeyword.keyword == normalized)
            .values(
                click_count=SearchKeyword.click_count + 1,
                last_searched_at=now,
                updated_at=now,
            )
        )
        if not result.rowcount:
            await self.db.rollback()
            self.logger.debug("click_for_unknown_keyword", keyword=normalized)
            return None

        record = await self._load(normalized)
        if product_id is not None:
            await self._link_products(record.id, [product_id])
            record = await self._load(normalized)

        self._refresh_scores(record, now, trending=False)
        await self.db.commit()

        self.logger.debug("click_recorded", keyword=normalized, click_count=record.click_count)

        return record

    async def get_trending_keywords(self, limit: int = 10) -> List[SearchKeyword]:
        """Keywords searched within the trending window, most weekly searches first."""
        cutoff = self.clock() - TRENDING_WINDOW
        result = await self.db.execute(
            select(SearchKeyword)
            .where(SearchKeyword.last_searched_at >= cutoff)
            .order_by(
                SearchKeyword.weekly_searches.desc(),
                SearchKeyword.trending_score.desc(),
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_popular_keywords(self, limit: int = 10) -> List[SearchKeyword]:
        """Keywords with the highest popularity score."""
        result = await self.db.execute(
            select(SearchKeyword)
            .order_by(
                SearchKeyword.popularity_score.desc(),
                SearchKeyword.search_count.desc(),
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_search_report(self, period: str = "week", limit: int = 20) -> SearchReport:
        """Top and trending keywords plus demand totals for a period.

        Args:
            period: One of REPORT_PERIODS, matched against last_searched_at
            limit: Maximum keywords per list

        Raises:
            ValueError: Unknown period
        """
        if period not in REPORT_PERIODS:
            raise ValueError(f"Unknown report period: {period}")

        window = REPORT_PERIODS[period]
        conditions = []
        if window is not None:
            conditions.append(SearchKeyword.last_searched_at >= self.clock() - window)

        top = await self.db.execute(
            select(SearchKeyword)
            .where(*conditions)
            .order_by(SearchKeyword.search_count.desc(), SearchKeyword.keyword)
            .limit(limit)
        )
        trending = await self.db.execute(
            select(SearchKeyword)
            .where(*conditions, SearchKeyword.trending == True)
            .order_by(SearchKeyword.trending_score.desc())
            .limit(limit)
        )
        totals = (
            await self.db.execute(
                select(
                    func.coalesce(func.sum(SearchKeyword.search_count), 0),
                    func.coalesce(func.sum(SearchKeyword.click_count), 0),
                    func.count(SearchKeyword.id),
                ).where(*conditions)
            )
        ).one()

        return SearchReport(
            period=period,
            top_searches=list(top.scalars().all()),
            trending_searches=list(trending.scalars().all()),
            total_searches=int(totals[0]),
            total_clicks=int(totals[1]),
            unique_searches=int(totals[2]),
        )

    async def cleanup_old_searches(self) -> int:
        """Reset weekly counters and trending flags of long-silent keywords.

        Records themselves are kept. Running it twice in a row touches
        nothing the second time.

        Returns:
            Number of keyword records reset
        """
        now = self.clock()
        cutoff = now - STALE_AFTER
        result = await self.db.execute(
            update(SearchKeyword)
            .where(
                SearchKeyword.last_searched_at < cutoff,
                or_(
                    SearchKeyword.weekly_searches != 0,
                    SearchKeyword.trending == True,
                    SearchKeyword.trending_score != 0,
                ),
            )
            .values(weekly_searches=0, trending=False, trending_score=0.0, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()

        reset = result.rowcount or 0
        self.logger.info("stale_keywords_reset", count=reset, cutoff=cutoff.isoformat())
        return reset

    async def refresh_derived_scores(self) -> int:
        """Recompute popularity and trending for recently active keywords.

        Repairs derived scores left stale by concurrent writers and lets
        trending decay for keywords nobody searched since.

        Returns:
            Number of keyword records refreshed
        """
        now = self.clock()
        result = await self.db.execute(
            select(SearchKeyword).where(SearchKeyword.last_searched_at >= now - STALE_AFTER)
        )
        records = list(result.scalars().all())
        for record in records:
            self._refresh_scores(record, now)
        await self.db.commit()

        self.logger.info("keyword_scores_refreshed", count=len(records))
        return len(records)


class SearchTracker:
    """Fire-and-forget analytics writes, each in its own session.

    Used from request background tasks: transient database errors are
    retried, anything else is logged and rolled back, never raised, so
    tracking cannot affect the search response.
    """

    def __init__(self, session_factory: async_sessionmaker, clock: Optional[Clock] = None):
        self.session_factory = session_factory
        self.clock = clock
        self.logger = logger.bind(service="search_tracker")

    @db_write_retry
    async def _write(self, operation: Callable[[AnalyticsService], Awaitable]) -> None:
        async with self.session_factory() as session:
            try:
                await operation(AnalyticsService(session, self.clock))
            except Exception:
                await session.rollback()
                raise

    async def track_search(self, keyword: str, result_count: int, product_ids: Iterable = ()) -> None:
        ids = list(product_ids)
        try:
            await self._write(lambda analytics: analytics.record_search(keyword, result_count, ids))
        except Exception as e:
            # Analytics must never break search
            self.logger.error("keyword_tracking_failed", keyword=keyword, error=str(e))

    async def track_click(self, keyword: str, product_id=None) -> None:
        try:
            await self._write(lambda analytics: analytics.record_click(keyword, product_id))
        except Exception as e:
            self.logger.error("click_tracking_failed", keyword=keyword, error=str(e))

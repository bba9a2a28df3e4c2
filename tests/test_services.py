"""Test suite for ShopSearch services.

Tests cover:
- Product repository (predicate pushdown, snapshots, facets)
- Search service (facet filtering, fallback, ranking, pagination)
- Suggestion service (blending, autocomplete, popular searches)
- Search analytics (counters, related products, trending, maintenance)
- Seeding and the maintenance scheduler
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shopsearch.core.exceptions import PersistenceUnavailableError
from shopsearch.db.seed import seed_if_empty
from shopsearch.jobs.scheduler import CLEANUP_JOB_ID, AnalyticsScheduler
from shopsearch.models import Category, Product, SearchKeyword
from shopsearch.search import documents as fields
from shopsearch.search.filter_builder import SearchFilters
from shopsearch.search.keyword_metrics import ensure_utc
from shopsearch.search.normalizer import compile_term
from shopsearch.search.predicate import Equals, Range, all_of, match
from shopsearch.services.analytics_service import AnalyticsService, SearchTracker
from shopsearch.services.product_repository import (
    ProductRepository,
    split_predicate,
    summarize_facets,
    to_searchable,
)
from shopsearch.services.search_service import SearchService
from shopsearch.services.suggestion_service import SuggestionService


def names(products):
    return [p.name for p in products]


def result_names(result):
    return [s.product.name for s in result.products]


# ============================================================================
# TESTS: PRODUCT REPOSITORY
# ============================================================================

class TestProductRepository:
    """Tests for ProductRepository and its helpers."""

    def test_split_predicate_pushes_scalars_down(self):
        text = match(fields.NAME, [compile_term("shirt")])
        predicate = all_of(
            Equals(fields.STATUS, "active"),
            Range(fields.PRICE, gte=10, lte=50),
            text,
        )

        conditions, residual = split_predicate(predicate)

        assert len(conditions) == 3
        assert residual == [text]

    def test_split_predicate_keeps_unknown_equals_in_process(self):
        predicate = Equals(fields.BRAND, "Arrow")

        conditions, residual = split_predicate(predicate)

        assert conditions == []
        assert residual == [predicate]

    async def test_find_combines_sql_and_text_clauses(self, test_db: AsyncSession, catalog):
        repo = ProductRepository(test_db)
        predicate = all_of(
            Equals(fields.STATUS, "active"),
            Range(fields.PRICE, lte=50),
            match(fields.CATEGORY_MAIN, [compile_term("men")]),
        )

        products, total = await repo.find(predicate)

        assert total == 2
        assert set(names(products)) == {"Classic Oxford Shirt", "Graphic Crew Tee"}

    async def test_find_orders_and_pages(self, test_db: AsyncSession, catalog):
        repo = ProductRepository(test_db)
        active = Equals(fields.STATUS, "active")

        products, total = await repo.find(active, order_by="views", skip=1, limit=2)

        assert total == 5
        assert names(products) == ["Classic Oxford Shirt", "Graphic Crew Tee"]

    async def test_find_returns_snapshots(self, test_db: AsyncSession, catalog):
        repo = ProductRepository(test_db)

        products, _ = await repo.find(Range(fields.PRICE, gte=600))

        phone = products[0]
        assert phone.id == catalog["phone"].id
        assert phone.category.full_path == "electronics/phones/smartphones"
        assert [lvl.level for lvl in phone.category.all_levels] == [1, 2, 3]
        assert phone.color_variants[0].color_name == "Graphite"
        assert phone.stock == 0
        assert phone.created_at.tzinfo is not None

    async def test_find_wraps_database_errors(self):
        db = MagicMock()
        db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))

        with pytest.raises(PersistenceUnavailableError) as exc_info:
            await ProductRepository(db).find(Equals(fields.STATUS, "active"))

        assert exc_info.value.status_code == 503

    async def test_brand_counts(self, test_db: AsyncSession, catalog):
        repo = ProductRepository(test_db)

        counts = await repo.brand_counts(Equals(fields.STATUS, "active"), limit=10)

        assert set(counts) == {("Arrow", 1), ("Urban", 1), ("Denimco", 1), ("Bloom", 1), ("Nova", 1)}

    async def test_most_viewed_names_skips_inactive(self, test_db: AsyncSession, catalog):
        repo = ProductRepository(test_db)

        assert await repo.most_viewed_names(limit=2) == ["Nova Smartphone 128GB", "Classic Oxford Shirt"]

    def test_to_searchable_skips_malformed_json(self):
        product = Product(
            id=uuid4(),
            name="Broken",
            tags=["ok", 3],
            category_main="Men",
            category_all_levels=[{"name": "Men", "level": "x"}, "junk", {"level": 2}],
            color_variants=[{"colorName": "Red", "sizeVariants": "bad"}, 7],
            price=Decimal("5.50"),
            status="active",
        )

        snapshot = to_searchable(product)

        assert snapshot.tags == ("ok",)
        assert [(lvl.level, lvl.name, lvl.slug) for lvl in snapshot.category.all_levels] == [(0, "Men", "men")]
        assert len(snapshot.color_variants) == 1
        assert snapshot.color_variants[0].size_variants == ()
        assert snapshot.price == 5.5
        assert snapshot.rating_average == 0.0

    def test_to_searchable_coerces_variant_scalars(self):
        product = Product(
            id=uuid4(),
            name="Boot",
            category_all_levels=[{"name": "Shoes", "level": 1, "slug": 5}],
            color_variants=[
                {
                    "colorName": 12,
                    "colorCode": ["#000"],
                    "sizeVariants": [{"size": 42, "customSize": 9.5, "stock": "3"}, {"size": True}],
                }
            ],
            price=Decimal("80.00"),
            status="active",
        )

        snapshot = to_searchable(product)

        color = snapshot.color_variants[0]
        assert (color.color_name, color.color_code) == ("12", None)
        assert [(s.size, s.custom_size, s.stock) for s in color.size_variants] == [
            ("42", "9.5", 3),
            (None, None, 0),
        ]
        assert snapshot.category.all_levels[0].slug == "shoes"

    def test_summarize_facets(self, searchable):
        products = [
            searchable("A", ("Men",), brand="Arrow", price=40.0, rating_average=4.5, rating_count=3),
            searchable("B", ("Men",), brand="Arrow", price=10.0, rating_average=5.0, rating_count=1),
            searchable("C", ("Women",), brand="Bloom", price=25.0, rating_average=2.2, rating_count=4),
            searchable("D", brand=None, price=99.0),
        ]

        facets = summarize_facets(products)

        assert facets["brands"] == [{"name": "Arrow", "count": 2}, {"name": "Bloom", "count": 1}]
        assert facets["categories"] == [{"name": "Men", "count": 2}, {"name": "Women", "count": 1}]
        assert facets["price_range"] == {"min": 10.0, "max": 99.0}
        assert facets["rating_distribution"] == {
            "0-1": 0, "1-2": 0, "2-3": 1, "3-4": 0, "4-5": 2, "unrated": 1,
        }

    def test_summarize_empty_candidates(self):
        facets = summarize_facets([])

        assert facets["brands"] == []
        assert facets["price_range"] == {"min": 0, "max": 0}


# ============================================================================
# TESTS: SEARCH SERVICE
# ============================================================================

class TestSearchService:
    """Tests for SearchService.search()."""

    async def test_category_and_type_query(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("mens shirt")

        assert result_names(result) == ["Classic Oxford Shirt"]
        assert result.search_meta["detected_primary_category"] == "men"
        assert result.search_meta["detected_product_type"] == "shirt"
        assert result.is_fallback_search is False

    async def test_bare_category_ranks_by_relevance(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("men")

        assert result_names(result) == ["Classic Oxford Shirt", "Graphic Crew Tee", "Slim Jeans"]
        scores = [s.score for s in result.products]
        assert scores == sorted(scores, reverse=True)

    async def test_pagination(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("men", page=2, limit=2)

        assert result.total == 3
        assert result.pages == 2
        assert result_names(result) == ["Slim Jeans"]
        assert len(result.related_product_ids) == 3

    async def test_sort_by_price(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("shirt", sort_by="price-high")

        assert result_names(result) == ["Silk Blouse Shirt", "Classic Oxford Shirt"]

    async def test_explicit_filters(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("men", filters=SearchFilters(max_price=30))

        assert result_names(result) == ["Graphic Crew Tee"]
        assert result.search_meta["has_filters"] is True

    async def test_fallback_uses_substrings(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("smartph")

        assert result.is_fallback_search is True
        assert result_names(result) == ["Nova Smartphone 128GB"]

    async def test_fallback_flag_set_even_without_results(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("zzzz")

        assert result.is_fallback_search is True
        assert result.total == 0
        assert result.suggestions == []

    async def test_few_results_add_category_suggestions(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("mens shirt")

        assert result.suggestions
        assert all(s["type"] == "category" for s in result.suggestions)
        assert "Men" in [s["name"] for s in result.suggestions]

    async def test_empty_query_skips_the_repository(self, test_db: AsyncSession):
        repository = AsyncMock()

        result = await SearchService(test_db, repository=repository).search("for the")

        assert result.total == 0
        assert result.products == []
        assert result.facets["price_range"] == {"min": 0, "max": 0}
        repository.find.assert_not_called()

    async def test_limit_is_clamped(self, test_db: AsyncSession, catalog):
        result = await SearchService(test_db).search("men", page=0, limit=10_000)

        assert result.page == 1
        assert result.limit == 100

    async def test_persistence_failure_propagates(self, test_db: AsyncSession):
        repository = AsyncMock()
        repository.find.side_effect = PersistenceUnavailableError("product query", "down")

        with pytest.raises(PersistenceUnavailableError):
            await SearchService(test_db, repository=repository).search("shirt")


# ============================================================================
# TESTS: SUGGESTION SERVICE
# ============================================================================

class TestSuggestionService:
    """Tests for suggestions, autocomplete and popular searches."""

    async def test_short_query_returns_trending(self, test_db: AsyncSession, clock):
        analytics = AnalyticsService(test_db, clock)
        for _ in range(3):
            await analytics.record_search("Sneakers")
        await analytics.record_search("Boots")

        suggestions = await SuggestionService(test_db, analytics=analytics).suggest("s")

        assert suggestions == [
            {"display": "Sneakers", "type": "trending", "count": 3},
            {"display": "Boots", "type": "trending", "count": 1},
        ]

    async def test_blends_sources_in_order(self, test_db: AsyncSession, catalog, categories, clock):
        analytics = AnalyticsService(test_db, clock)
        await analytics.record_search("Shirt Sale")

        suggestions = await SuggestionService(test_db, analytics=analytics).suggest("shirt")

        assert [(s["type"], s["display"]) for s in suggestions] == [
            ("trending", "Shirt Sale"),
            ("product", "Classic Oxford Shirt"),
            ("product", "Silk Blouse Shirt"),
            ("category", "Men"),
            ("subcategory", "Shirts in Men"),
        ]
        product = suggestions[1]
        assert product["brand"] == "Arrow"
        assert product["category"] == "Men > Shirts"
        assert suggestions[4]["parent_category"] == "men"

    async def test_brand_suggestions(self, test_db: AsyncSession, catalog):
        suggestions = await SuggestionService(test_db).suggest("nova")

        assert {"display": "Nova", "type": "brand", "count": 1} in suggestions

    async def test_suggestions_are_unique_and_limited(self, test_db: AsyncSession, catalog, categories):
        suggestions = await SuggestionService(test_db).suggest("shirt", limit=2)

        assert len(suggestions) == 2
        assert len({s["display"] for s in suggestions}) == 2

    async def test_lookup_failure_returns_empty(self, test_db: AsyncSession):
        repository = AsyncMock()
        repository.find.side_effect = PersistenceUnavailableError("product query", "down")

        service = SuggestionService(test_db, repository=repository)

        assert await service.suggest("shirt") == []
        assert await service.autocomplete("shirt") == []

    async def test_autocomplete(self, test_db: AsyncSession, catalog, categories):
        service = SuggestionService(test_db)

        assert await service.autocomplete("shirt") == ["Classic Oxford Shirt", "Silk Blouse Shirt", "Shirts"]
        assert await service.autocomplete("nova") == ["Nova Smartphone 128GB", "Nova"]
        assert await service.autocomplete("s") == []

    async def test_popular_searches_from_keywords(self, test_db: AsyncSession, clock):
        analytics = AnalyticsService(test_db, clock)
        await analytics.record_search("Shoes")
        await analytics.record_search("shoes")
        await analytics.record_search("Bags")
        service = SuggestionService(test_db, analytics=analytics)

        assert await service.popular_searches(kind="popular") == [
            {"keyword": "Shoes", "type": "popular", "count": 2},
            {"keyword": "Bags", "type": "popular", "count": 1},
        ]
        combined = await service.popular_searches()
        assert [(e["keyword"], e["type"]) for e in combined] == [("Shoes", "trending"), ("Bags", "trending")]

    async def test_popular_searches_fall_back_to_catalog(self, test_db: AsyncSession, catalog, categories):
        entries = await SuggestionService(test_db).popular_searches()

        products = [e["keyword"] for e in entries if e["type"] == "product"]
        assert products[:3] == ["Nova Smartphone 128GB", "Classic Oxford Shirt", "Graphic Crew Tee"]
        assert [e["keyword"] for e in entries if e["type"] == "category"] == ["Electronics", "Men", "Shirts"]
        assert all(e["count"] is None for e in entries)

    async def test_popular_searches_rejects_unknown_kind(self, test_db: AsyncSession):
        with pytest.raises(ValueError, match="kind"):
            await SuggestionService(test_db).popular_searches(kind="weekly")


# ============================================================================
# TESTS: SEARCH ANALYTICS
# ============================================================================

class TestAnalyticsService:
    """Tests for AnalyticsService."""

    async def test_repeated_search_updates_one_record(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)
        first, second, third = uuid4(), uuid4(), uuid4()

        await service.record_search("Red Shoes", 5, [first, second])
        clock.advance(hours=1)
        record = await service.record_search("  red shoes ", 3, [third, first])

        count = (await test_db.execute(select(func.count()).select_from(SearchKeyword))).scalar_one()
        assert count == 1
        assert record.keyword == "red shoes"
        assert record.original_keyword == "Red Shoes"
        assert record.search_count == 2
        assert record.weekly_searches == 2
        assert record.result_count == 3
        assert record.related_product_ids == {first, second, third}
        assert ensure_utc(record.last_searched_at) == clock.now

    async def test_blank_keyword_is_ignored(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)

        assert await service.record_search("   ", 4) is None
        assert await service.record_click("", uuid4()) is None

    async def test_invalid_product_ids_are_skipped(self, test_db: AsyncSession, clock):
        valid = uuid4()

        record = await AnalyticsService(test_db, clock).record_search("tee", 2, ["not-a-uuid", str(valid)])

        assert record.related_product_ids == {valid}

    async def test_search_scores(self, test_db: AsyncSession, clock):
        record = await AnalyticsService(test_db, clock).record_search("laptop", 7)

        assert record.popularity_score == pytest.approx(2.0)
        assert record.trending_score == pytest.approx(1.0)
        assert record.trending is False

    async def test_click_updates_popularity_only(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)
        await service.record_search("laptop", 7)
        product_id = uuid4()

        record = await service.record_click("Laptop", product_id)

        assert record.click_count == 1
        assert record.search_count == 1
        # (1*2 + 1*5) * (1 + 1/1)
        assert record.popularity_score == pytest.approx(14.0)
        assert record.trending_score == pytest.approx(1.0)
        assert product_id in record.related_product_ids

    async def test_click_on_unknown_keyword(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)

        assert await service.record_click("never searched") is None
        count = (await test_db.execute(select(func.count()).select_from(SearchKeyword))).scalar_one()
        assert count == 0

    async def test_trending_window_and_order(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)
        for _ in range(5):
            await service.record_search("old fad")
        clock.advance(days=8)
        await service.record_search("bags")
        for _ in range(3):
            await service.record_search("shoes")

        trending = await service.get_trending_keywords()

        assert [k.keyword for k in trending] == ["shoes", "bags"]

    async def test_trending_flag_needs_volume(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)
        for _ in range(11):
            record = await service.record_search("sandals")

        assert record.trending is True
        assert record.trending_score == pytest.approx(11.0)

    async def test_popular_order(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)
        await service.record_search("hats")
        await service.record_search("caps")
        await service.record_click("caps")

        popular = await service.get_popular_keywords(limit=1)

        assert [k.keyword for k in popular] == ["caps"]

    async def test_cleanup_resets_stale_keywords(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)
        for _ in range(12):
            stale = await service.record_search("winter coat")
        clock.advance(days=31)
        fresh = await service.record_search("swimsuit")

        assert await service.cleanup_old_searches() == 1
        assert await service.cleanup_old_searches() == 0

        await test_db.refresh(stale)
        await test_db.refresh(fresh)
        assert stale.search_count == 12
        assert stale.weekly_searches == 0
        assert stale.trending is False
        assert stale.trending_score == 0.0
        assert fresh.weekly_searches == 1

    async def test_refresh_lets_trending_decay(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)
        for _ in range(12):
            record = await service.record_search("umbrella")
        assert record.trending is True

        clock.advance(days=3)
        assert await service.refresh_derived_scores() == 1

        await test_db.refresh(record)
        assert record.trending_score == pytest.approx(12 * (1 - 3 / 7))
        assert record.trending is False

    async def test_search_report_counts_only_the_period(self, test_db: AsyncSession, clock):
        service = AnalyticsService(test_db, clock)
        await service.record_search("boots")
        clock.advance(days=3)
        await service.record_search("jeans")
        await service.record_search("jeans")
        await service.record_click("jeans")
        for _ in range(11):
            await service.record_search("sale")

        day = await service.get_search_report("day")
        week = await service.get_search_report("week", limit=2)

        assert [k.keyword for k in day.top_searches] == ["sale", "jeans"]
        assert [k.keyword for k in day.trending_searches] == ["sale"]
        assert (day.total_searches, day.total_clicks, day.unique_searches) == (13, 1, 2)
        assert [k.keyword for k in week.top_searches] == ["sale", "jeans"]
        assert (week.total_searches, week.total_clicks, week.unique_searches) == (14, 1, 3)

    async def test_search_report_without_data(self, test_db: AsyncSession, clock):
        report = await AnalyticsService(test_db, clock).get_search_report("month")

        assert report.period == "month"
        assert report.top_searches == []
        assert report.trending_searches == []
        assert (report.total_searches, report.total_clicks, report.unique_searches) == (0, 0, 0)

    async def test_search_report_rejects_unknown_period(self, test_db: AsyncSession, clock):
        with pytest.raises(ValueError):
            await AnalyticsService(test_db, clock).get_search_report("year")


class TestSearchTracker:
    """Tests for the fire-and-forget analytics writer."""

    async def test_tracks_in_own_session(self, session_factory, test_db: AsyncSession, clock):
        tracker = SearchTracker(session_factory, clock)

        await tracker.track_search("Jeans", 4, [uuid4()])
        await tracker.track_click("jeans")

        record = (await test_db.execute(select(SearchKeyword))).scalar_one()
        assert record.search_count == 1
        assert record.click_count == 1

    async def test_failures_are_swallowed(self):
        engine = create_async_engine("sqlite+aiosqlite:///:memory:")
        tracker = SearchTracker(async_sessionmaker(engine, class_=AsyncSession))

        # No tables: every write fails
        await tracker.track_search("jeans", 1, [])
        await tracker.track_click("jeans", uuid4())

        await engine.dispose()

    async def test_transient_errors_are_retried(self, session_factory):
        tracker = SearchTracker(session_factory)
        locked = OperationalError("INSERT", {}, Exception("database is locked"))
        record = AsyncMock(side_effect=[locked, None])

        with patch.object(AnalyticsService, "record_search", record):
            await tracker.track_search("jeans", 1, [])

        assert record.await_count == 2


# ============================================================================
# TESTS: SEEDING AND MAINTENANCE
# ============================================================================

class TestSeed:
    """Tests for development seeding."""

    async def test_seed_if_empty(self, test_db: AsyncSession):
        assert await seed_if_empty(test_db) is True
        assert await seed_if_empty(test_db) is False

        product_count = (await test_db.execute(select(func.count()).select_from(Product))).scalar_one()
        category_count = (await test_db.execute(select(func.count()).select_from(Category))).scalar_one()
        assert product_count > 0
        assert category_count > 0

    async def test_seeded_catalog_is_searchable(self, test_db: AsyncSession):
        await seed_if_empty(test_db)

        result = await SearchService(test_db).search("mens shirt")

        assert result.total >= 1
        assert all(s.product.category.main == "Men" for s in result.products)


class TestAnalyticsScheduler:
    """Tests for the maintenance jobs."""

    async def test_jobs_run_in_own_sessions(self, session_factory):
        scheduler = AnalyticsScheduler(session_factory)

        assert await scheduler.run_cleanup() == 0
        assert await scheduler.run_refresh() == 0

    async def test_wrapper_invalidates_keyword_cache(self, session_factory, fake_cache):
        fake_cache.store = {"trending:l10": "[]", "popular:l5": "[]", "other": "x"}
        scheduler = AnalyticsScheduler(session_factory, cache=fake_cache)

        await scheduler._run_wrapper(CLEANUP_JOB_ID, scheduler.run_cleanup)

        assert fake_cache.store == {"other": "x"}

    async def test_wrapper_swallows_job_failures(self, session_factory, fake_cache):
        scheduler = AnalyticsScheduler(session_factory, cache=fake_cache)
        failing = AsyncMock(side_effect=RuntimeError("boom"))

        await scheduler._run_wrapper(CLEANUP_JOB_ID, failing)

        failing.assert_awaited_once()
        assert fake_cache.deleted_patterns == []

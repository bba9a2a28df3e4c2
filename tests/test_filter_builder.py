"""Tests for search predicates and the filter builder."""

import pytest

from shopsearch.search import documents as fields
from shopsearch.search.documents import CategoryPath, SearchableProduct
from shopsearch.search.filter_builder import (
    SearchFilters,
    apply_explicit_filters,
    build_fallback_filter,
    build_filter,
)
from shopsearch.search.normalizer import compile_term
from shopsearch.search.predicate import And, Equals, Or, Range, all_of, evaluate, match
from shopsearch.search.tokenizer import parse_query


def matching(products, query, match_mode="all", filters=None):
    parsed = parse_query(query)
    predicate = apply_explicit_filters(
        build_filter(parsed.tokens, parsed.primary_category, parsed.product_type, match_mode),
        filters,
    )
    return [p.name for p in products if evaluate(predicate, p)]


@pytest.fixture
def products(searchable):
    return [
        searchable("Oxford Shirt", ("Men", "Shirts", "Formal"), brand="Arrow", price=40.0, stock=5),
        searchable("Crew Tee", ("Men", "T-Shirts"), brand="Urban", price=20.0, stock=0),
        searchable("Slim Jeans", ("Men", "Jeans"), brand="Denimco", price=60.0, stock=2),
        searchable("Silk Shirt", ("Women", "Shirts"), brand="Bloom", price=55.0, rating_average=4.8),
        searchable("Red Dress", ("Women", "Dresses"), colors=("Red",), price=70.0),
        searchable("Old Shirt", ("Men", "Shirts"), status="archived"),
    ]


# ============================================================================
# TESTS: PREDICATE EVALUATION
# ============================================================================

class TestPredicate:
    """Tests for the predicate tree."""

    def test_all_of_flattens_nested_ands(self):
        inner = all_of(Equals(fields.STATUS, "active"), Range(fields.PRICE, gte=1))
        outer = all_of(inner, Range(fields.STOCK, gt=0))

        assert isinstance(outer, And)
        assert len(outer.clauses) == 3

    def test_missing_category_levels_never_match(self, searchable):
        product = searchable("Plain", ("Men",))

        assert not evaluate(match(fields.CATEGORY_STYLE, [compile_term("men")]), product)
        assert evaluate(match(fields.CATEGORY_MAIN, [compile_term("men")]), product)

    def test_malformed_data_is_a_non_match(self):
        product = SearchableProduct(id="bad", name="Broken", price="not-a-number")

        assert evaluate(Range(fields.PRICE, gte=10), product) is False

    def test_unknown_field_is_a_bug_not_a_non_match(self, searchable):
        with pytest.raises(KeyError):
            evaluate(Equals("colour", "red"), searchable("X"))

    def test_range_bounds(self, searchable):
        product = searchable("X", price=50.0)

        assert evaluate(Range(fields.PRICE, gte=50, lte=50), product)
        assert not evaluate(Range(fields.PRICE, gt=50), product)


# ============================================================================
# TESTS: FILTER BUILDER
# ============================================================================

class TestBuildFilter:
    """Tests for build_filter()."""

    def test_category_and_type_are_anded(self, products):
        """'mens shirt' excludes women's shirts, men's jeans and hyphenated t-shirts."""
        assert matching(products, "mens shirt") == ["Oxford Shirt"]

    def test_facet_predicate_shape(self):
        parsed = parse_query("mens shirt")
        predicate = build_filter(parsed.tokens, parsed.primary_category, parsed.product_type)

        assert isinstance(predicate, And)
        assert predicate.clauses[0] == Equals(fields.STATUS, "active")
        category, product_type = predicate.clauses[1:]
        assert isinstance(category, Or)
        assert {c.field for c in category.clauses} == {fields.CATEGORY_MAIN}
        assert isinstance(product_type, Or)
        assert len(product_type.clauses) == 6

    def test_bare_category_returns_whole_category(self, products):
        assert matching(products, "women") == ["Silk Shirt", "Red Dress"]

    def test_type_without_category_uses_open_predicate(self, products):
        assert matching(products, "shirt") == ["Oxford Shirt", "Silk Shirt"]

    def test_open_predicate_requires_every_token(self, products):
        assert matching(products, "oxford arrow") == ["Oxford Shirt"]
        assert matching(products, "oxford bloom") == []

    def test_any_mode_accepts_any_token(self, products):
        assert matching(products, "oxford bloom", match_mode="any") == ["Oxford Shirt", "Silk Shirt"]

    def test_detected_type_narrows_open_predicate_to_that_token(self, products):
        assert matching(products, "red dress") == ["Red Dress"]
        assert matching(products, "blue jeans") == ["Slim Jeans"]

    def test_open_predicate_normalizes_product_terms(self, searchable):
        phone = searchable("Nova 5G", ("Electronics", "Phones"))

        assert matching([phone], "mobile") == ["Nova 5G"]

    def test_inactive_products_never_match(self, products):
        assert "Old Shirt" not in matching(products, "shirt", match_mode="any")

    def test_unknown_match_mode(self):
        with pytest.raises(ValueError, match="match mode"):
            build_filter(["shirt"], match_mode="some")


class TestExplicitFilters:
    """Tests for apply_explicit_filters()."""

    def test_no_filters_returns_predicate_unchanged(self):
        predicate = Equals(fields.STATUS, "active")

        assert apply_explicit_filters(predicate, SearchFilters()) is predicate
        assert apply_explicit_filters(predicate, None) is predicate

    def test_price_brand_and_stock(self, products):
        filters = SearchFilters(min_price=30, max_price=60, in_stock=True)

        assert matching(products, "men", filters=filters) == ["Oxford Shirt", "Slim Jeans"]
        assert matching(products, "men", filters=SearchFilters(brand="urban")) == ["Crew Tee"]

    def test_category_filters(self, products):
        assert matching(products, "shirt", filters=SearchFilters(main_category="Women")) == ["Silk Shirt"]
        assert matching(products, "men", filters=SearchFilters(sub_category="Jeans")) == ["Slim Jeans"]
        assert matching(products, "men", filters=SearchFilters(category="formal")) == ["Oxford Shirt"]

    def test_all_means_no_filter(self, products):
        filters = SearchFilters(category="all", main_category="ALL")

        assert not filters.has_filters
        assert matching(products, "shirt", filters=filters) == ["Oxford Shirt", "Silk Shirt"]

    def test_minimum_rating(self, products):
        assert matching(products, "shirt", filters=SearchFilters(min_rating=4.5)) == ["Silk Shirt"]

    def test_blank_brand_is_ignored(self, products):
        filters = SearchFilters(brand="  ")

        assert not filters.has_filters
        assert matching(products, "jeans", filters=filters) == ["Slim Jeans"]


class TestFallbackFilter:
    """Tests for build_fallback_filter()."""

    def test_substring_matching_across_fields(self, searchable):
        product = searchable("Nova Smartphone", ("Electronics", "Phones"))

        assert not matching([product], "smartph")
        assert evaluate(build_fallback_filter(["smartph"]), product)

    def test_fallback_still_requires_active_status(self, searchable):
        product = searchable("Nova Smartphone", status="draft")

        assert not evaluate(build_fallback_filter(["nova"]), product)

    def test_category_path_from_levels_is_contiguous(self):
        path = CategoryPath.from_levels("Men", None, "Formal")

        assert path.main == "Men"
        assert path.type is None
        assert [lvl.name for lvl in path.all_levels] == ["Men"]
        assert path.full_path == "men"

"""Tests for dimension filters applied before aggregation."""

from src.analytics.filters import DimensionFilter, FilterOperator, apply_dimension_filters, normalize_text
from src.analytics.models import Dimension, MetricRow


def _rows(*keys):
    return [MetricRow(key=key, metrics={"clicks": 1}) for key in keys]


def _keys(rows):
    return [row.key for row in rows]


def test_normalize_text():
    assert normalize_text("  Running\tSHOES ") == "running shoes"
    assert normalize_text("") == ""


def test_no_filters_keeps_everything():
    rows = _rows("a", "b")
    assert _keys(apply_dimension_filters(rows, Dimension.QUERY, [])) == ["a", "b"]


def test_equals_is_exact():
    rows = _rows("running shoes", "Running Shoes", "shoes")
    flt = DimensionFilter(dimension=Dimension.QUERY, expression="running shoes")
    assert _keys(apply_dimension_filters(rows, Dimension.QUERY, [flt])) == ["running shoes"]


def test_contains_ignores_case():
    rows = _rows("running shoes", "Trail SHOES", "socks")
    flt = DimensionFilter(dimension=Dimension.QUERY, expression="shoes", operator=FilterOperator.CONTAINS)
    assert _keys(apply_dimension_filters(rows, "query", [flt])) == ["running shoes", "Trail SHOES"]


def test_content_group_filter_on_pages():
    rows = _rows("/blog/a", "https://example.com/Blog/b", "/shop/c")
    flt = DimensionFilter(dimension=Dimension.CONTENT_GROUP, expression="/Blog")
    assert _keys(apply_dimension_filters(rows, Dimension.PAGE, [flt])) == ["/blog/a", "https://example.com/Blog/b"]


def test_all_filters_must_match():
    rows = _rows("/blog/shoes", "/blog/socks", "/shop/shoes")
    filters = [
        DimensionFilter(dimension=Dimension.CONTENT_GROUP, expression="/blog"),
        DimensionFilter(dimension=Dimension.PAGE, expression="shoes", operator=FilterOperator.CONTAINS),
    ]
    assert _keys(apply_dimension_filters(rows, Dimension.PAGE, filters)) == ["/blog/shoes"]


def test_filters_for_other_dimensions_ignored():
    rows = _rows("running shoes")
    flt = DimensionFilter(dimension=Dimension.PAGE, expression="/blog")
    assert _keys(apply_dimension_filters(rows, Dimension.QUERY, [flt])) == ["running shoes"]


def test_input_not_mutated():
    rows = _rows("a", "b")
    flt = DimensionFilter(dimension=Dimension.QUERY, expression="a")
    apply_dimension_filters(rows, Dimension.QUERY, [flt])
    assert _keys(rows) == ["a", "b"]

"""Tests for period-over-period trend calculation."""

import math

import pytest

from src.analytics.models import Direction, TrendResult
from src.analytics.trend import calculate_trend, signed_change, trend_sort_key


class TestCalculateTrend:
    @pytest.mark.parametrize("current", [1, 5, 0.5, 12000])
    def test_no_baseline_is_new(self, current):
        trend = calculate_trend(current, 0)
        assert trend.is_infinity is True
        assert trend.direction == Direction.UP
        assert trend.magnitude_percent == 0

    @pytest.mark.parametrize("value", [1, 10, 250.5])
    def test_unchanged_is_zero(self, value):
        trend = calculate_trend(value, value)
        assert trend.magnitude_percent == 0
        assert trend.is_infinity is False
        assert trend.direction == Direction.UP

    def test_both_zero_is_no_signal(self):
        assert calculate_trend(0, 0) == TrendResult(Direction.UP, 0.0, False)

    def test_doubling(self):
        assert calculate_trend(100, 50) == TrendResult(Direction.UP, 100.0, False)

    def test_decrease(self):
        trend = calculate_trend(25, 100)
        assert trend.direction == Direction.DOWN
        assert trend.magnitude_percent == 75.0

    def test_one_decimal_precision(self):
        # 2/3 - 1 = -33.33...%
        trend = calculate_trend(2, 3)
        assert trend.direction == Direction.DOWN
        assert trend.magnitude_percent == 33.3

    def test_drop_to_zero(self):
        trend = calculate_trend(0, 40)
        assert trend.direction == Direction.DOWN
        assert trend.magnitude_percent == 100.0
        assert trend.is_infinity is False

    def test_none_inputs_read_as_zero(self):
        assert calculate_trend(None, None) == calculate_trend(0, 0)

    def test_negative_inputs_clamped(self):
        assert calculate_trend(-5, -10) == calculate_trend(0, 0)
        assert calculate_trend(10, -3).is_infinity is True


class TestSignedChange:
    def test_up(self):
        assert signed_change(calculate_trend(150, 100)) == 50.0

    def test_down_is_negative(self):
        assert signed_change(calculate_trend(50, 100)) == -50.0

    def test_new_is_infinity_sentinel(self):
        assert signed_change(calculate_trend(3, 0)) == math.inf

    def test_missing_trend(self):
        assert signed_change(None) == 0.0


class TestTrendSortKey:
    def test_new_ranks_above_any_increase(self):
        new = trend_sort_key(calculate_trend(1, 0))
        big = trend_sort_key(calculate_trend(10_000, 1))
        assert new > big

    def test_finite_ordering(self):
        down = trend_sort_key(calculate_trend(50, 100))
        flat = trend_sort_key(calculate_trend(100, 100))
        up = trend_sort_key(calculate_trend(150, 100))
        assert down < flat < up

    def test_keys_are_finite(self):
        for trend in (calculate_trend(1, 0), calculate_trend(0, 0), calculate_trend(1, 2)):
            assert all(math.isfinite(part) for part in trend_sort_key(trend))

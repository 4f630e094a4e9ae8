"""
Metric Aggregator

Sums named metrics across row sets. Group totals are always derived
here before a trend is computed, for both periods independently.
"""

import logging
from collections.abc import Iterable, Sequence

from .models import BucketRow, MetricRow, MetricValue
from .trend import calculate_trend

logger = logging.getLogger(__name__)


def _ordered(rows: Iterable[MetricRow | BucketRow]) -> list[MetricRow | BucketRow]:
    # Summation order is fixed by key so float totals do not depend on input order.
    return sorted(rows, key=lambda row: row.key)


def sum_metric(rows: Iterable[MetricRow | BucketRow], metric: str) -> float:
    """Sum one metric across rows. Missing values count as 0; empty input gives 0."""
    total = 0
    for row in _ordered(rows):
        total += row.get(metric)
    return total


def sum_metrics(rows: Iterable[MetricRow | BucketRow], metrics: Sequence[str]) -> dict[str, float]:
    """Sum several metrics in one pass."""
    ordered = _ordered(rows)
    totals: dict[str, float] = {metric: 0 for metric in metrics}
    for row in ordered:
        for metric in metrics:
            totals[metric] += row.get(metric)
    return totals


def period_totals(
    current: Sequence[MetricRow],
    previous: Sequence[MetricRow],
    metrics: Sequence[str],
) -> dict[str, MetricValue]:
    """
    Totals of each metric for the current period with its trend.

    Args:
        current: Rows for the current period
        previous: Rows for the previous period
        metrics: Metric names to total

    Returns:
        Mapping of metric name to current total and trend
    """
    current_totals = sum_metrics(current, metrics)
    previous_totals = sum_metrics(previous, metrics)

    logger.debug(f"Period totals over {len(current)} current / {len(previous)} previous rows")

    return {
        metric: MetricValue(
            value=current_totals[metric],
            trend=calculate_trend(current_totals[metric], previous_totals[metric]),
        )
        for metric in metrics
    }

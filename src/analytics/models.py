"""Canonical data structures for the analytics engine.

Every payload is normalized into these shapes at the boundary
(see parsing.py); nothing past that point inspects raw API rows.
"""

from dataclasses import dataclass, field
from enum import Enum


class Direction(str, Enum):
    """Direction of change between the previous and current period."""

    UP = "up"
    DOWN = "down"


class Category(str, Enum):
    """Table tabs an entity can be classified into."""

    POPULAR = "popular"
    GROWING = "growing"
    DECAYING = "decaying"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Dimension(str, Enum):
    """Dimension a metric row set is broken down by."""

    DATE = "date"
    PAGE = "page"
    QUERY = "query"
    CONTENT_GROUP = "content_group"
    POSITION_RANGES = "position-ranges"
    CHANNEL = "channel"


class TimePeriod(str, Enum):
    """Reporting periods offered by the dashboard."""

    DAYS_7 = "7 days"
    DAYS_14 = "14 days"
    DAYS_28 = "28 days"
    MONTHS_3 = "3 months"
    MONTHS_6 = "6 months"
    MONTHS_12 = "12 months"


@dataclass(frozen=True)
class MetricRow:
    """One dimension value for one period."""

    key: str
    metrics: dict[str, float] = field(default_factory=dict)

    def get(self, metric: str) -> float:
        """Metric value, 0 when the row does not carry it."""
        return self.metrics.get(metric, 0)


@dataclass(frozen=True)
class BucketRow:
    """Per-day counts of results falling into each ranking bucket."""

    key: str  # date key
    counts: dict[str, float] = field(default_factory=dict)

    def get(self, bucket: str) -> float:
        return self.counts.get(bucket, 0)


@dataclass(frozen=True)
class TrendResult:
    """
    Change of one metric from the previous to the current period.

    is_infinity marks the no-baseline case (previous == 0, current > 0);
    magnitude_percent is 0 in that case and must be rendered as "new".
    """

    direction: Direction
    magnitude_percent: float
    is_infinity: bool = False


@dataclass(frozen=True)
class MetricValue:
    value: float
    trend: TrendResult


@dataclass(frozen=True)
class Entity:
    """A page, query, content group or channel with trend-annotated metrics."""

    key: str
    display_name: str
    metrics: dict[str, MetricValue] = field(default_factory=dict)

    def value(self, metric: str) -> float:
        metric_value = self.metrics.get(metric)
        return metric_value.value if metric_value is not None else 0

    def trend(self, metric: str) -> TrendResult | None:
        metric_value = self.metrics.get(metric)
        return metric_value.trend if metric_value is not None else None


@dataclass(frozen=True)
class RawPoint:
    """One date (or bucket) of a chart series before normalization."""

    label: str
    values: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ChartPoint:
    label: str
    raw: dict[str, float] = field(default_factory=dict)
    normalized: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class PositionBucket:
    key: str
    label: str
    daily_average: int
    trend: TrendResult


@dataclass(frozen=True)
class PeriodRows:
    """Current and previous row sets for one dimension."""

    current: list[MetricRow] = field(default_factory=list)
    previous: list[MetricRow] = field(default_factory=list)

"""
Position bucket aggregation.

Each day of a position-ranges row set reports how many results ranked
in each bucket (1-3, 4-20, 20+). The bucket summary compares floor'd
daily averages of the two periods.
"""

import logging
from collections.abc import Sequence

from .aggregator import sum_metric
from .config import BucketDefinition, EngineConfig
from .models import BucketRow, ChartPoint, PositionBucket, RawPoint
from .normalizer import compute_bands, normalize_window
from .series import format_date_label, normalize_date_key, parse_date_key
from .trend import calculate_trend

logger = logging.getLogger(__name__)


def daily_average(rows: Sequence[BucketRow], bucket: str, days: int | None = None) -> int:
    """Floor of the bucket total divided by the number of days (at least 1)."""
    days = days if days and days > 0 else (len(rows) or 1)
    return int(sum_metric(rows, bucket) // days)


def aggregate_buckets(
    current: Sequence[BucketRow],
    previous: Sequence[BucketRow],
    buckets: Sequence[BucketDefinition] | None = None,
    current_days: int | None = None,
    previous_days: int | None = None,
) -> list[PositionBucket]:
    """
    Daily average per bucket with its trend.

    Args:
        current: Current period rows, one per day
        previous: Previous period rows, one per day
        buckets: Bucket definitions (default: configured position buckets)
        current_days: Days in the current period (default: row count)
        previous_days: Days in the previous period (default: row count)

    Returns:
        One PositionBucket per definition, in definition order
    """
    buckets = buckets if buckets is not None else EngineConfig().position_buckets

    results = []
    for bucket in buckets:
        current_avg = daily_average(current, bucket.key, current_days)
        previous_avg = daily_average(previous, bucket.key, previous_days)
        results.append(
            PositionBucket(
                key=bucket.key,
                label=bucket.label,
                daily_average=current_avg,
                trend=calculate_trend(current_avg, previous_avg),
            )
        )

    logger.debug(f"Aggregated {len(results)} position buckets over {len(current)} days")
    return results


def _label(date_key: str) -> str:
    day = parse_date_key(date_key)
    return format_date_label(day) if day else date_key


def position_chart(
    rows: Sequence[BucketRow],
    buckets: Sequence[BucketDefinition] | None = None,
    bands: Sequence[tuple[float, float]] | None = None,
    zoom_level: float = 1.0,
    center: int | None = None,
    inset: float = 0.0,
) -> list[ChartPoint]:
    """
    Three-band overlay of the per-day bucket counts.

    The best-ranked bucket takes the lowest band by default.
    """
    buckets = buckets if buckets is not None else EngineConfig().position_buckets
    keys = [bucket.key for bucket in buckets]
    ordered = sorted(rows, key=lambda row: normalize_date_key(row.key) or row.key)
    points = [RawPoint(label=_label(row.key), values={key: row.get(key) for key in keys}) for row in ordered]
    if bands is None:
        bands = compute_bands(len(keys), top_down=False)
    return normalize_window(points, keys, zoom_level=zoom_level, center=center, bands=bands, inset=inset)

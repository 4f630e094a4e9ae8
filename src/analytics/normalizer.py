"""
Chart Normalizer

Rescales several metric series onto one shared 0-100 axis. Each metric
gets its own disjoint band so a large series (impressions) cannot
flatten a small one (clicks). Min/max come from the points currently
in view, so every zoom change is a full recomputation. Raw values are
carried alongside the normalized ones for tooltips.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from .models import ChartPoint, RawPoint

logger = logging.getLogger(__name__)

AXIS_MIN = 0.0
AXIS_MAX = 100.0
_TOLERANCE = 1e-6

ZOOM_IN_FACTOR = 1.1
ZOOM_OUT_FACTOR = 0.9
MIN_VISIBLE_POINTS = 2

Band = tuple[float, float]


def compute_bands(count: int, top_down: bool = True) -> list[Band]:
    """
    Split the axis into count equal, contiguous bands.

    With top_down the first metric gets the highest band:
    2 metrics -> [(50, 100), (0, 50)].
    """
    if count <= 0:
        return []
    edges = [AXIS_MIN + (AXIS_MAX - AXIS_MIN) * i / count for i in range(count + 1)]
    bands = [(edges[i], edges[i + 1]) for i in range(count)]
    return list(reversed(bands)) if top_down else bands


def validate_bands(bands: Sequence[Band]) -> None:
    """Raise ValueError unless bands are disjoint and together cover the axis."""
    if not bands:
        return
    ordered = sorted(bands)
    for start, end in ordered:
        if end <= start:
            raise ValueError(f"Band ({start}, {end}) is empty or inverted")
    if abs(ordered[0][0] - AXIS_MIN) > _TOLERANCE or abs(ordered[-1][1] - AXIS_MAX) > _TOLERANCE:
        raise ValueError(f"Bands must cover [{AXIS_MIN}, {AXIS_MAX}]")
    for (_, end), (next_start, _) in zip(ordered, ordered[1:]):
        if next_start < end - _TOLERANCE:
            raise ValueError(f"Bands overlap at {next_start}")
        if next_start > end + _TOLERANCE:
            raise ValueError(f"Gap between bands at {end}")


def scale_to_band(value: float, low: float, high: float, band: Band, inset: float = 0.0) -> float:
    """
    Map value from [low, high] linearly into band.

    inset shrinks the drawable part of the band by that fraction of its
    width on each side. A flat series (high == low) sits on the midpoint.
    """
    band_start, band_end = band
    if high == low:
        return (band_start + band_end) / 2
    margin = (band_end - band_start) * inset
    start = band_start + margin
    end = band_end - margin
    return start + (value - low) / (high - low) * (end - start)


def _metric_values(points: Sequence[RawPoint], metric: str) -> list[float]:
    values = []
    for point in points:
        value = point.values.get(metric, 0) or 0
        values.append(value if math.isfinite(value) else 0)
    return values


def normalize_points(
    points: Sequence[RawPoint],
    metrics: Sequence[str],
    bands: Sequence[Band] | None = None,
    inset: float = 0.0,
) -> list[ChartPoint]:
    """
    Normalize every metric of points into its band.

    Args:
        points: The visible points only
        metrics: Metric names, in band order
        bands: One band per metric (default: equal split, first metric on top)
        inset: Fraction of each band kept empty at both edges

    Returns:
        One ChartPoint per input point, raw values unchanged
    """
    if not points or not metrics:
        return [ChartPoint(label=p.label, raw=dict(p.values), normalized={}) for p in points]

    bands = list(bands) if bands is not None else compute_bands(len(metrics))
    if len(bands) != len(metrics):
        raise ValueError(f"Expected {len(metrics)} bands, got {len(bands)}")
    validate_bands(bands)

    scaled: dict[str, list[float]] = {}
    for metric, band in zip(metrics, bands):
        values = _metric_values(points, metric)
        low, high = min(values), max(values)
        scaled[metric] = [scale_to_band(v, low, high, band, inset) for v in values]

    return [
        ChartPoint(
            label=point.label,
            raw={metric: point.values.get(metric, 0) for metric in metrics},
            normalized={metric: scaled[metric][i] for metric in metrics},
        )
        for i, point in enumerate(points)
    ]


@dataclass(frozen=True)
class ZoomWindow:
    """Inclusive index range of the visible points."""

    start: int
    end: int

    def slice(self, points: Sequence) -> list:
        return list(points[self.start : self.end + 1])


def visible_window(total: int, zoom_level: float = 1.0, center: int | None = None) -> ZoomWindow:
    """
    Index window shown at a zoom level around center.

    No zoom (level <= 1 or no center) shows everything; any zoom keeps at
    least two points in view.
    """
    if total <= 0:
        return ZoomWindow(start=0, end=-1)
    if zoom_level <= 1 or center is None:
        return ZoomWindow(start=0, end=total - 1)

    center = max(0, min(total - 1, center))
    visible = max(MIN_VISIBLE_POINTS, math.floor(total / zoom_level))
    half = visible // 2
    start = max(0, center - half)
    end = min(total - 1, center + half)
    if end - start + 1 < MIN_VISIBLE_POINTS:
        if start == 0:
            end = min(total - 1, 1)
        else:
            start = max(0, total - MIN_VISIBLE_POINTS)
    return ZoomWindow(start=start, end=end)


def zoom_step(zoom_level: float, total: int, zoom_in: bool) -> float:
    """Apply one wheel step, clamped to [1, total / 2]."""
    factor = ZOOM_IN_FACTOR if zoom_in else ZOOM_OUT_FACTOR
    max_zoom = max(1.0, total / 2)
    return max(1.0, min(zoom_level * factor, max_zoom))


def normalize_window(
    points: Sequence[RawPoint],
    metrics: Sequence[str],
    zoom_level: float = 1.0,
    center: int | None = None,
    bands: Sequence[Band] | None = None,
    inset: float = 0.0,
) -> list[ChartPoint]:
    """Slice points to the zoom window, then normalize against that slice alone."""
    window = visible_window(len(points), zoom_level, center)
    visible = window.slice(points)
    logger.debug(f"Normalizing {len(visible)}/{len(points)} points for {list(metrics)}")
    return normalize_points(visible, metrics, bands=bands, inset=inset)


def toggle_series(visible: dict[str, bool], key: str, checked: bool) -> dict[str, bool]:
    """Show or hide a series; hiding the last visible series is refused."""
    if not checked and sum(1 for shown in visible.values() if shown) <= 1:
        return dict(visible)
    updated = dict(visible)
    updated[key] = checked
    return updated

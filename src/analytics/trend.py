"""Period-over-period trend calculation."""

import logging
import math

from .models import Direction, TrendResult

logger = logging.getLogger(__name__)

NO_CHANGE = TrendResult(direction=Direction.UP, magnitude_percent=0.0, is_infinity=False)
NEW_ENTITY = TrendResult(direction=Direction.UP, magnitude_percent=0.0, is_infinity=True)


def calculate_trend(current: float = 0, previous: float = 0) -> TrendResult:
    """
    Compute the change from previous to current.

    Args:
        current: Metric value for the current period
        previous: Metric value for the previous period

    Returns:
        TrendResult with a one-decimal magnitude. previous == 0 never
        divides: both zero is "no change", a positive current is "new".
    """
    current = current or 0
    previous = previous or 0
    if current < 0 or previous < 0:
        logger.warning(f"Negative metric value clamped to 0 (current={current}, previous={previous})")
        current = max(current, 0)
        previous = max(previous, 0)

    if previous == 0:
        return NEW_ENTITY if current > 0 else NO_CHANGE

    delta = (current - previous) / previous * 100
    return TrendResult(
        direction=Direction.UP if delta >= 0 else Direction.DOWN,
        magnitude_percent=round(abs(delta), 1),
        is_infinity=False,
    )


def signed_change(trend: TrendResult | None) -> float:
    """Signed percentage for table output; math.inf marks a new entity."""
    if trend is None:
        return 0.0
    if trend.is_infinity:
        return math.inf
    if trend.direction == Direction.DOWN:
        return -trend.magnitude_percent
    return trend.magnitude_percent


def trend_sort_key(trend: TrendResult | None) -> tuple[int, float]:
    """
    Ordering key for sorting by change.

    New entities rank above every finite change as a separate tier,
    so no infinity arithmetic leaks into comparisons.
    """
    if trend is None:
        return (0, 0.0)
    if trend.is_infinity:
        return (1, 0.0)
    return (0, signed_change(trend))

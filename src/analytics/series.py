"""
Date series preparation for overview charts.

Turns date-dimension rows into a gap-free daily series covering the
selected period, ending on the last day that has data.
"""

import calendar
import logging
import re
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta

from .models import MetricRow, RawPoint, TimePeriod

logger = logging.getLogger(__name__)

_DASHED = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_MONTH = re.compile(r"^(\d{4})-(\d{2})$")
_COMPACT = re.compile(r"^(\d{4})(\d{2})(\d{2})$")

PERIOD_DAYS = {
    TimePeriod.DAYS_7: 6,
    TimePeriod.DAYS_14: 13,
    TimePeriod.DAYS_28: 27,
}
PERIOD_MONTHS = {
    TimePeriod.MONTHS_3: 3,
    TimePeriod.MONTHS_6: 6,
    TimePeriod.MONTHS_12: 12,
}
# Short periods drop leading/trailing days without any activity.
TRIMMED_PERIODS = {TimePeriod.DAYS_7, TimePeriod.DAYS_14, TimePeriod.DAYS_28, TimePeriod.MONTHS_3}


def normalize_date_key(value: str) -> str | None:
    """YYYY-MM-DD, YYYY-MM or YYYYMMDD -> YYYY-MM-DD; None when unrecognized."""
    if not value:
        return None
    trimmed = value.strip()
    match = _DASHED.match(trimmed) or _COMPACT.match(trimmed)
    if match:
        return f"{match[1]}-{match[2]}-{match[3]}"
    match = _MONTH.match(trimmed)
    if match:
        return f"{match[1]}-{match[2]}-01"
    return None


def parse_date_key(value: str) -> date | None:
    key = normalize_date_key(value)
    if key is None:
        return None
    try:
        return date.fromisoformat(key)
    except ValueError:
        return None


def format_date_label(day: date) -> str:
    """Short axis label, e.g. "Mar 5"."""
    return f"{day:%b} {day.day}"


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of the target month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_start(period: TimePeriod | str, end: date) -> date:
    period = TimePeriod(period)
    if period in PERIOD_DAYS:
        return end - timedelta(days=PERIOD_DAYS[period])
    return add_months(end, -PERIOD_MONTHS[period])


def _has_activity(values: dict[str, float]) -> bool:
    return any((value or 0) > 0 for value in values.values())


def fill_date_series(
    rows: Sequence[MetricRow],
    metrics: Sequence[str],
    period: TimePeriod | str = TimePeriod.MONTHS_3,
    today: date | None = None,
) -> list[RawPoint]:
    """
    Daily points for every day of period, zero-filled.

    Args:
        rows: Date-dimension rows (keys in any accepted date format)
        metrics: Metric names to carry
        period: Selected reporting period
        today: Fallback end date when rows are empty (default: UTC today)

    Returns:
        RawPoints labelled "Mon D", oldest first
    """
    period = TimePeriod(period)
    by_day: dict[date, dict[str, float]] = {}
    for row in sorted(rows, key=lambda r: r.key):
        day = parse_date_key(row.key)
        if day is None:
            logger.debug(f"Skipping row with unrecognized date key {row.key!r}")
            continue
        # "2024-03-05" and "20240305" are the same day
        totals = by_day.setdefault(day, {metric: 0 for metric in metrics})
        for metric in metrics:
            totals[metric] += row.get(metric)

    active_days = [day for day, values in by_day.items() if _has_activity(values)]
    if active_days:
        end = max(active_days)
    elif by_day:
        end = max(by_day)
    else:
        end = today or datetime.now(UTC).date()

    start = period_start(period, end)
    filled = []
    cursor = start
    while cursor <= end:
        values = by_day.get(cursor) or {metric: 0 for metric in metrics}
        filled.append(RawPoint(label=format_date_label(cursor), values=dict(values)))
        cursor += timedelta(days=1)

    if period in TRIMMED_PERIODS:
        active = [i for i, point in enumerate(filled) if _has_activity(point.values)]
        if active:
            return filled[active[0] : active[-1] + 1]
    return filled

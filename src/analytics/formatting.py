"""Display helpers for metric values and changes."""

from .models import Direction, TrendResult


def _trim(value: float) -> str:
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


def format_number(value: float) -> str:
    """Compact count: 1.2M, 123K, 1.5K or 999."""
    value = value or 0
    if value >= 1_000_000:
        return f"{_trim(round(value / 1_000_000, 1))}M"
    if value >= 100_000:
        return f"{round(value / 1_000)}K"
    if value >= 1_000:
        return f"{_trim(round(value / 1_000, 1))}K"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def format_change(trend: TrendResult | None) -> str:
    """Change label: "New" when there is no baseline, else "+12.5%" / "-3%"."""
    if trend is None:
        return "0%"
    if trend.is_infinity:
        return "New"
    if trend.magnitude_percent == 0:
        return "0%"
    sign = "-" if trend.direction == Direction.DOWN else "+"
    return f"{sign}{_trim(trend.magnitude_percent)}%"

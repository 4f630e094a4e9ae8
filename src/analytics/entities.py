"""Join current and previous row sets into trend-annotated entities."""

import logging
from collections.abc import Callable, Sequence

from .models import Entity, MetricRow, MetricValue
from .trend import calculate_trend

logger = logging.getLogger(__name__)


def build_entities(
    current: Sequence[MetricRow],
    previous: Sequence[MetricRow],
    metrics: Sequence[str],
    display_name: Callable[[str], str] | None = None,
) -> list[Entity]:
    """
    Build one entity per current-period row.

    Rows are matched across periods by exact key. A key missing from the
    previous period behaves as a previous value of 0 for every metric.
    Keys only present in the previous period are not reported.

    Args:
        current: Current period rows
        previous: Previous period rows
        metrics: Metric names to annotate with a trend
        display_name: Optional key -> label function (default: the key)

    Returns:
        Entities in current-row order
    """
    previous_by_key = {row.key: row for row in previous}

    entities = []
    for row in current:
        prev = previous_by_key.get(row.key)
        entities.append(
            Entity(
                key=row.key,
                display_name=display_name(row.key) if display_name else row.key,
                metrics={
                    metric: MetricValue(
                        value=row.get(metric),
                        trend=calculate_trend(row.get(metric), prev.get(metric) if prev else 0),
                    )
                    for metric in metrics
                },
            )
        )

    logger.debug(f"Built {len(entities)} entities ({len(previous_by_key)} previous keys)")
    return entities

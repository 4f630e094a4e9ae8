"""Stable sort pipeline shared by every table dataset."""

from collections.abc import Sequence
from dataclasses import dataclass

from .config import EngineConfig
from .models import Entity, SortDirection
from .trend import trend_sort_key

CHANGE_SUFFIX = ":change"


def default_direction(column: str, config: EngineConfig | None = None) -> SortDirection:
    """Descending for volume metrics, ascending for rank-like metrics."""
    config = config or EngineConfig()
    metric = column.removesuffix(CHANGE_SUFFIX)
    if metric in config.ascending_metrics and not column.endswith(CHANGE_SUFFIX):
        return SortDirection.ASC
    return SortDirection.DESC


@dataclass(frozen=True)
class SortState:
    column: str = "impressions"
    direction: SortDirection = SortDirection.DESC

    def toggle(self, column: str, config: EngineConfig | None = None) -> "SortState":
        """Same column flips direction; a new column starts at its default."""
        if column == self.column:
            flipped = SortDirection.ASC if self.direction == SortDirection.DESC else SortDirection.DESC
            return SortState(column=column, direction=flipped)
        return SortState(column=column, direction=default_direction(column, config))


def validate_sort_column(entities: Sequence[Entity], column: str) -> str | None:
    """
    Error message when column is not sortable for this dataset, else None.

    An empty dataset accepts any column.
    """
    if not entities:
        return None
    metric = column.removesuffix(CHANGE_SUFFIX)
    if any(metric in entity.metrics for entity in entities):
        return None
    return f"Unsupported sort column '{column}'"


def sort_entities(
    entities: Sequence[Entity],
    column: str,
    direction: SortDirection | str = SortDirection.DESC,
) -> list[Entity]:
    """
    Sort entities by a metric value, or by its change with "<metric>:change".

    The sort is stable in both directions: equal keys keep input order.
    Entities without the column sort as 0.
    """
    descending = SortDirection(direction) == SortDirection.DESC

    if column.endswith(CHANGE_SUFFIX):
        metric = column.removesuffix(CHANGE_SUFFIX)
        return sorted(entities, key=lambda e: trend_sort_key(e.trend(metric)), reverse=descending)

    return sorted(entities, key=lambda e: e.value(column), reverse=descending)

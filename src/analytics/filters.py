"""Dimension filters applied to row sets before aggregation."""

import logging
import re
import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .config import EngineConfig
from .grouping import group_key_for
from .models import Dimension, MetricRow

logger = logging.getLogger(__name__)


class FilterOperator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"


FILTERABLE_DIMENSIONS = {Dimension.QUERY, Dimension.PAGE, Dimension.CONTENT_GROUP}


@dataclass(frozen=True)
class DimensionFilter:
    dimension: Dimension
    expression: str
    operator: FilterOperator = FilterOperator.EQUALS


def normalize_text(text: str) -> str:
    """Normalize text for matching: lowercase, NFKC, collapse whitespace."""
    if not text:
        return ""
    text = unicodedata.normalize("NFKC", text)
    text = text.lower()
    return re.sub(r"\s+", " ", text).strip()


def _matches(value: str, flt: DimensionFilter, exact_case: bool) -> bool:
    if flt.operator == FilterOperator.CONTAINS:
        return normalize_text(flt.expression) in normalize_text(value)
    if exact_case:
        return value == flt.expression
    return normalize_text(value) == normalize_text(flt.expression)


def _filter_value(row: MetricRow, row_dimension: Dimension, flt: DimensionFilter, config: EngineConfig) -> str | None:
    if flt.dimension == row_dimension:
        return row.key
    if flt.dimension == Dimension.CONTENT_GROUP and row_dimension == Dimension.PAGE:
        return group_key_for(row.key, config)
    return None


def apply_dimension_filters(
    rows: Sequence[MetricRow],
    row_dimension: Dimension | str,
    filters: Sequence[DimensionFilter],
    config: EngineConfig | None = None,
) -> list[MetricRow]:
    """
    Keep rows matching every applicable filter.

    A filter applies when it targets the rows' own dimension, or when it
    is a content_group filter over page rows (matched on the group key).
    Filters on other dimensions were already applied by the data source
    and are ignored here.
    """
    config = config or EngineConfig()
    row_dimension = Dimension(row_dimension)

    applicable = [
        flt
        for flt in filters
        if flt.dimension in FILTERABLE_DIMENSIONS
        and (flt.dimension == row_dimension or (flt.dimension == Dimension.CONTENT_GROUP and row_dimension == Dimension.PAGE))
    ]
    if not applicable:
        return list(rows)

    kept = []
    for row in rows:
        keep = True
        for flt in applicable:
            value = _filter_value(row, row_dimension, flt, config)
            # Group keys are lowercased paths, so group filters compare case-insensitively.
            exact_case = flt.dimension != Dimension.CONTENT_GROUP
            if value is None or not _matches(value, flt, exact_case):
                keep = False
                break
        if keep:
            kept.append(row)

    logger.debug(f"Dimension filters kept {len(kept)}/{len(rows)} {row_dimension.value} rows")
    return kept

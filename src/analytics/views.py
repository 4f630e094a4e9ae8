"""
Dataset views handed to the rendering layer.

Each builder takes an already-fetched payload, runs the parse ->
aggregate -> trend -> classify -> sort pipeline and returns plain
dataclasses. Invalid call patterns (unknown category or sort column)
come back as ViewResult.error instead of an exception so callers can
compose views without try/except.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from .aggregator import period_totals
from .classification import count_by_category, filter_entities, is_known_category
from .config import EngineConfig
from .entities import build_entities
from .filters import DimensionFilter, apply_dimension_filters
from .formatting import format_change, format_number
from .grouping import build_group_entities, display_name_for
from .models import (
    Category,
    ChartPoint,
    Dimension,
    Entity,
    MetricValue,
    PositionBucket,
    TimePeriod,
)
from .normalizer import normalize_window
from .parsing import extract_row_sets, parse_bucket_rows, parse_period_rows
from .positions import aggregate_buckets, position_chart
from .series import fill_date_series
from .sorting import SortState, sort_entities, validate_sort_column
from .trend import signed_change

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableCell:
    value: float
    change: float  # signed percent, math.inf for a new entity
    is_new: bool = False
    value_label: str = ""  # "1.2K"
    change_label: str = ""  # "+12.5%", "New"


@dataclass(frozen=True)
class TableRow:
    key: str
    display_name: str
    metrics: dict[str, TableCell] = field(default_factory=dict)


@dataclass(frozen=True)
class ViewResult:
    rows: list[TableRow] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    total: int = 0
    category: str = Category.POPULAR.value
    sort: SortState = field(default_factory=SortState)
    error: str | None = None


@dataclass(frozen=True)
class OverviewResult:
    totals: dict[str, MetricValue] = field(default_factory=dict)
    chart: list[ChartPoint] = field(default_factory=list)


@dataclass(frozen=True)
class PositionView:
    buckets: list[PositionBucket] = field(default_factory=list)
    chart: list[ChartPoint] = field(default_factory=list)


def to_table_rows(entities: Sequence[Entity], metrics: Sequence[str] | None = None) -> list[TableRow]:
    """Table output rows; change carries the math.inf sentinel for new entities."""
    rows = []
    for entity in entities:
        names = metrics if metrics is not None else list(entity.metrics)
        cells = {}
        for name in names:
            trend = entity.trend(name)
            value = entity.value(name)
            cells[name] = TableCell(
                value=value,
                change=signed_change(trend),
                is_new=bool(trend and trend.is_infinity),
                value_label=format_number(value),
                change_label=format_change(trend),
            )
        rows.append(TableRow(key=entity.key, display_name=entity.display_name, metrics=cells))
    return rows


def build_table_view(
    entities: Sequence[Entity],
    category: Category | str = Category.POPULAR,
    sort: SortState | None = None,
    config: EngineConfig | None = None,
    limit: int | None = None,
) -> ViewResult:
    """
    Classify, sort and format one dataset.

    Args:
        entities: Pages, queries, content groups or channels
        category: Tab to show (popular shows everything)
        sort: Active sort column and direction
        config: Engine configuration (tracked metrics decide classification)
        limit: Keep at most this many rows after sorting

    Returns:
        ViewResult; error is set and rows empty on an invalid call
    """
    config = config or EngineConfig()
    sort = sort or SortState(column=config.tracked_metrics[0])
    category_name = category.value if isinstance(category, Category) else category

    if not is_known_category(category_name):
        return ViewResult(category=category_name, sort=sort, error=f"Unknown category '{category_name}'")

    error = validate_sort_column(entities, sort.column)
    if error:
        return ViewResult(category=category_name, sort=sort, error=error)

    tracked = list(config.tracked_metrics)
    filtered = filter_entities(entities, category_name, tracked)
    ordered = sort_entities(filtered, sort.column, sort.direction)
    if limit is not None:
        ordered = ordered[:limit]

    logger.debug(f"Table view {category_name}: {len(ordered)}/{len(entities)} rows by {sort.column}")

    return ViewResult(
        rows=to_table_rows(ordered),
        counts=count_by_category(entities, tracked),
        total=len(entities),
        category=category_name,
        sort=sort,
    )


def build_dimension_view(
    payload: Any,
    dimension: Dimension | str,
    category: Category | str = Category.POPULAR,
    sort: SortState | None = None,
    filters: Sequence[DimensionFilter] = (),
    config: EngineConfig | None = None,
    limit: int | None = None,
) -> ViewResult:
    """
    Table view for a page, query, channel or pre-grouped content_group payload.
    """
    config = config or EngineConfig()
    dimension = Dimension(dimension)
    metrics = list(config.tracked_metrics) + list(config.averaged_metrics)

    rows = parse_period_rows(payload, metrics=metrics)
    current = apply_dimension_filters(rows.current, dimension, filters, config)
    previous = apply_dimension_filters(rows.previous, dimension, filters, config)

    display_name = None
    if dimension == Dimension.CONTENT_GROUP:
        display_name = partial(display_name_for, config=config)

    entities = build_entities(current, previous, metrics, display_name=display_name)
    return build_table_view(entities, category, sort, config, limit)


def build_content_group_view(
    page_payload: Any,
    category: Category | str = Category.POPULAR,
    sort: SortState | None = None,
    filters: Sequence[DimensionFilter] = (),
    config: EngineConfig | None = None,
    limit: int | None = None,
) -> ViewResult:
    """Content groups derived locally from page-dimension rows."""
    config = config or EngineConfig()
    metrics = list(config.tracked_metrics) + list(config.averaged_metrics)

    rows = parse_period_rows(page_payload, metrics=metrics)
    current = apply_dimension_filters(rows.current, Dimension.PAGE, filters, config)
    previous = apply_dimension_filters(rows.previous, Dimension.PAGE, filters, config)

    entities = build_group_entities(current, previous, config)
    return build_table_view(entities, category, sort, config, limit)


def build_overview(
    date_payload: Any,
    period: TimePeriod | str = TimePeriod.MONTHS_3,
    preset: str = "overview",
    zoom_level: float = 1.0,
    center: int | None = None,
    config: EngineConfig | None = None,
) -> OverviewResult:
    """
    Period totals with trends plus the normalized overlay chart.

    Chart metrics and bands come from the named band preset; without one
    the tracked metrics are split into equal bands.
    """
    config = config or EngineConfig()
    band_preset = config.preset(preset)
    if band_preset is not None:
        metrics = band_preset.metrics
        bands = list(band_preset.bands.values())
    else:
        metrics = list(config.tracked_metrics)
        bands = None

    rows = parse_period_rows(date_payload, metrics=metrics)
    totals = period_totals(rows.current, rows.previous, metrics)
    points = fill_date_series(rows.current, metrics, period)
    chart = normalize_window(points, metrics, zoom_level, center, bands=bands, inset=config.band_inset)
    return OverviewResult(totals=totals, chart=chart)


def build_position_view(
    payload: Any,
    preset: str = "positions",
    zoom_level: float = 1.0,
    center: int | None = None,
    config: EngineConfig | None = None,
) -> PositionView:
    """Bucket summary and three-band chart for a position-ranges payload."""
    config = config or EngineConfig()
    bucket_keys = [bucket.key for bucket in config.position_buckets]

    row_sets = extract_row_sets(payload)
    current = parse_bucket_rows(row_sets.current, bucket_keys)
    previous = parse_bucket_rows(row_sets.previous, bucket_keys)

    band_preset = config.preset(preset)
    bands = None
    if band_preset is not None and band_preset.metrics == bucket_keys:
        bands = list(band_preset.bands.values())

    return PositionView(
        buckets=aggregate_buckets(current, previous, config.position_buckets),
        chart=position_chart(
            current,
            config.position_buckets,
            bands=bands,
            zoom_level=zoom_level,
            center=center,
            inset=config.band_inset,
        ),
    )

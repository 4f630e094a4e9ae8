"""
Analytics Trend & Normalization Engine

Turns current-vs-previous metric rows from a search analytics source into:
- Trend-annotated entities (pages, queries, content groups, channels)
- Popular / growing / decaying classifications and sorted tables
- Daily-average position buckets
- Band-normalized overlay chart series
"""

from .aggregator import period_totals, sum_metric, sum_metrics
from .classification import classify, count_by_category, filter_entities
from .config import EngineConfig, load_config
from .entities import build_entities
from .formatting import format_change, format_number
from .grouping import build_group_entities, display_name_for, group_key_for, group_rows, normalize_path
from .models import (
    BucketRow,
    Category,
    ChartPoint,
    Direction,
    Entity,
    MetricRow,
    MetricValue,
    PositionBucket,
    RawPoint,
    SortDirection,
    TrendResult,
)
from .normalizer import compute_bands, normalize_points, normalize_window, visible_window
from .positions import aggregate_buckets, position_chart
from .session import RequestToken, ViewSession
from .sorting import SortState, sort_entities
from .trend import calculate_trend, signed_change
from .views import (
    build_content_group_view,
    build_dimension_view,
    build_overview,
    build_position_view,
    build_table_view,
)

__all__ = [
    "BucketRow",
    "Category",
    "ChartPoint",
    "Direction",
    "EngineConfig",
    "Entity",
    "MetricRow",
    "MetricValue",
    "PositionBucket",
    "RawPoint",
    "RequestToken",
    "SortDirection",
    "SortState",
    "TrendResult",
    "ViewSession",
    "aggregate_buckets",
    "build_content_group_view",
    "build_dimension_view",
    "build_entities",
    "build_group_entities",
    "build_overview",
    "build_position_view",
    "build_table_view",
    "calculate_trend",
    "classify",
    "compute_bands",
    "count_by_category",
    "display_name_for",
    "filter_entities",
    "format_change",
    "format_number",
    "group_key_for",
    "group_rows",
    "load_config",
    "normalize_path",
    "normalize_points",
    "normalize_window",
    "period_totals",
    "position_chart",
    "signed_change",
    "sort_entities",
    "sum_metric",
    "sum_metrics",
    "visible_window",
]

"""
Analytics API Router

Exposes the trend engine to the dashboard front-end. Requests carry
already-fetched current/previous rows; responses are chart- and
table-ready. JSON has no Infinity, so a new entity is reported as
change=null with is_new=true.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from .config import EngineConfig, load_config
from .filters import DimensionFilter, FilterOperator
from .models import ChartPoint, Dimension, RawPoint, SortDirection, TimePeriod, TrendResult
from .normalizer import normalize_window
from .sorting import SortState, default_direction
from .views import (
    ViewResult,
    build_content_group_view,
    build_dimension_view,
    build_overview,
    build_position_view,
)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def get_engine_config() -> EngineConfig:
    return load_config()


# --- Pydantic Models ---


class FilterModel(BaseModel):
    dimension: Dimension
    expression: str
    operator: FilterOperator = FilterOperator.EQUALS


class RowSetRequest(BaseModel):
    current: list[dict[str, Any]] = []
    previous: list[dict[str, Any]] = []


class TableRequest(RowSetRequest):
    dimension: Dimension = Dimension.PAGE
    category: str = "popular"
    sort_column: str | None = None
    sort_direction: SortDirection | None = None
    filters: list[FilterModel] = []
    limit: int | None = Field(default=None, ge=1, le=5000)


class OverviewRequest(RowSetRequest):
    period: TimePeriod = TimePeriod.MONTHS_3
    preset: str = "overview"
    zoom_level: float = Field(default=1.0, ge=1.0)
    zoom_center: int | None = Field(default=None, ge=0)


class PositionsRequest(RowSetRequest):
    preset: str = "positions"
    zoom_level: float = Field(default=1.0, ge=1.0)
    zoom_center: int | None = Field(default=None, ge=0)


class PointModel(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    label: str
    values: dict[str, float] = {}


class ChartRequest(BaseModel):
    points: list[PointModel]
    metrics: list[str]
    bands: list[tuple[float, float]] | None = None
    inset: float = Field(default=0.0, ge=0.0, lt=0.5)
    zoom_level: float = Field(default=1.0, ge=1.0)
    zoom_center: int | None = Field(default=None, ge=0)


class TrendModel(BaseModel):
    direction: str
    magnitude_percent: float
    is_new: bool


class CellModel(BaseModel):
    value: float
    change: float | None
    is_new: bool
    value_label: str
    change_label: str


class RowModel(BaseModel):
    key: str
    display_name: str
    metrics: dict[str, CellModel]


class TableResponse(BaseModel):
    rows: list[RowModel]
    counts: dict[str, int]
    total: int
    category: str
    sort_column: str
    sort_direction: SortDirection


class ChartPointModel(BaseModel):
    label: str
    raw: dict[str, float]
    normalized: dict[str, float]


class MetricTotalModel(BaseModel):
    value: float
    trend: TrendModel


class OverviewResponse(BaseModel):
    totals: dict[str, MetricTotalModel]
    chart: list[ChartPointModel]


class PositionBucketModel(BaseModel):
    key: str
    label: str
    daily_average: int
    trend: TrendModel


class PositionsResponse(BaseModel):
    buckets: list[PositionBucketModel]
    chart: list[ChartPointModel]


# --- Serialization ---


def _trend(trend: TrendResult) -> TrendModel:
    return TrendModel(
        direction=trend.direction.value,
        magnitude_percent=trend.magnitude_percent,
        is_new=trend.is_infinity,
    )


def _chart(points: list[ChartPoint]) -> list[ChartPointModel]:
    return [ChartPointModel(label=p.label, raw=p.raw, normalized=p.normalized) for p in points]


def _table(result: ViewResult) -> TableResponse:
    if result.error:
        raise HTTPException(status_code=422, detail=result.error)
    return TableResponse(
        rows=[
            RowModel(
                key=row.key,
                display_name=row.display_name,
                metrics={
                    name: CellModel(
                        value=cell.value,
                        change=None if cell.is_new else cell.change,
                        is_new=cell.is_new,
                        value_label=cell.value_label,
                        change_label=cell.change_label,
                    )
                    for name, cell in row.metrics.items()
                },
            )
            for row in result.rows
        ],
        counts=result.counts,
        total=result.total,
        category=result.category,
        sort_column=result.sort.column,
        sort_direction=result.sort.direction,
    )


def _sort_state(request: TableRequest, config: EngineConfig) -> SortState:
    column = request.sort_column or config.tracked_metrics[0]
    direction = request.sort_direction or default_direction(column, config)
    return SortState(column=column, direction=direction)


def _filters(request: TableRequest) -> list[DimensionFilter]:
    return [DimensionFilter(dimension=f.dimension, expression=f.expression, operator=f.operator) for f in request.filters]


# --- Endpoints ---


@router.post("/table", response_model=TableResponse)
def api_table(request: TableRequest, config: EngineConfig = Depends(get_engine_config)):
    """
    Classified, sorted table for one dimension.

    Content-group payloads are expected to be grouped already; use
    /content-groups to group page rows.
    """
    payload = {"current": request.current, "previous": request.previous}
    result = build_dimension_view(
        payload,
        request.dimension,
        category=request.category,
        sort=_sort_state(request, config),
        filters=_filters(request),
        config=config,
        limit=request.limit,
    )
    return _table(result)


@router.post("/content-groups", response_model=TableResponse)
def api_content_groups(request: TableRequest, config: EngineConfig = Depends(get_engine_config)):
    """Content groups aggregated from page rows of both periods."""
    payload = {"current": request.current, "previous": request.previous}
    result = build_content_group_view(
        payload,
        category=request.category,
        sort=_sort_state(request, config),
        filters=_filters(request),
        config=config,
        limit=request.limit,
    )
    return _table(result)


@router.post("/overview", response_model=OverviewResponse)
def api_overview(request: OverviewRequest, config: EngineConfig = Depends(get_engine_config)):
    """Totals with trends and the normalized overlay chart for date rows."""
    result = build_overview(
        {"current": request.current, "previous": request.previous},
        period=request.period,
        preset=request.preset,
        zoom_level=request.zoom_level,
        center=request.zoom_center,
        config=config,
    )
    return OverviewResponse(
        totals={
            name: MetricTotalModel(value=total.value, trend=_trend(total.trend))
            for name, total in result.totals.items()
        },
        chart=_chart(result.chart),
    )


@router.post("/positions", response_model=PositionsResponse)
def api_positions(request: PositionsRequest, config: EngineConfig = Depends(get_engine_config)):
    """Daily-average position buckets and their three-band chart."""
    result = build_position_view(
        {"current": request.current, "previous": request.previous},
        preset=request.preset,
        zoom_level=request.zoom_level,
        center=request.zoom_center,
        config=config,
    )
    return PositionsResponse(
        buckets=[
            PositionBucketModel(
                key=bucket.key,
                label=bucket.label,
                daily_average=bucket.daily_average,
                trend=_trend(bucket.trend),
            )
            for bucket in result.buckets
        ],
        chart=_chart(result.chart),
    )


@router.post("/chart", response_model=list[ChartPointModel])
def api_chart(request: ChartRequest):
    """Normalize arbitrary series into bands over the visible window."""
    points = [RawPoint(label=p.label, values=p.values) for p in request.points]
    try:
        chart = normalize_window(
            points,
            request.metrics,
            zoom_level=request.zoom_level,
            center=request.zoom_center,
            bands=request.bands,
            inset=request.inset,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _chart(chart)

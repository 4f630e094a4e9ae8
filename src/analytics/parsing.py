"""
Boundary parsing of analytics payloads.

The data source has returned several shapes over time: a v2 envelope
({"success", "data": {"ranges", "current", "previous"}}), a bare
{"current", "previous"} object, and legacy table strings ({"rows": [...]}
serialized as JSON, with numbers such as "1.2K" or "3,400"). All of them
are normalized here into MetricRow / BucketRow lists so the rest of the
engine sees one canonical shape. Nothing in this module raises on bad
data: unusable payloads become empty row sets.
"""

import json
import logging
import math
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import BucketRow, MetricRow, PeriodRows

logger = logging.getLogger(__name__)

KEY_FIELDS = ("key", "keys", "group", "date", "page", "query", "channel")
NON_METRIC_FIELDS = set(KEY_FIELDS) | {"displayName", "display_name", "Group"}

_SUFFIXES = {"K": 1_000, "M": 1_000_000}


class PeriodRanges(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_start: str | None = Field(default=None, alias="currentStart")
    current_end: str | None = Field(default=None, alias="currentEnd")
    previous_start: str | None = Field(default=None, alias="previousStart")
    previous_end: str | None = Field(default=None, alias="previousEnd")


class RowSetPayload(BaseModel):
    current: list[dict[str, Any]] = []
    previous: list[dict[str, Any]] = []
    ranges: PeriodRanges | None = None


class AnalyticsResponse(BaseModel):
    success: bool = True
    data: RowSetPayload


class LegacyTablePayload(BaseModel):
    rows: list[dict[str, Any]] = []


def coerce_number(value: Any) -> float | None:
    """
    Numeric value of a metric field, or None when it is not numeric.

    Handles "1,234", "12%", "1.2K" and "3M" as well as plain numbers.
    NaN and infinite values are not numeric.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    cleaned = value.strip().replace(",", "").replace("%", "")
    multiplier = 1
    if cleaned[-1:].upper() in _SUFFIXES:
        multiplier = _SUFFIXES[cleaned[-1].upper()]
        cleaned = cleaned[:-1]
    try:
        number = float(cleaned) * multiplier
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _row_key(raw: dict[str, Any], key_field: str | None) -> str | None:
    fields = (key_field,) if key_field else KEY_FIELDS
    for name in fields:
        value = raw.get(name)
        if name == "keys" and isinstance(value, list):
            value = value[0] if value else None
        if value is not None and value != "":
            return str(value)
    return None


def _row_metrics(raw: dict[str, Any], metrics: Sequence[str] | None, key_field: str | None) -> dict[str, float]:
    if metrics is not None:
        candidates: Iterable[str] = metrics
    else:
        candidates = [name for name in raw if name not in NON_METRIC_FIELDS and name != key_field]

    values = {}
    for name in candidates:
        number = coerce_number(raw.get(name))
        if number is None:
            if metrics is None:
                continue
            number = 0.0
        if number < 0:
            logger.warning(f"Negative value for {name!r} clamped to 0")
            number = 0.0
        values[name] = number
    return values


def parse_metric_rows(
    raw_rows: Iterable[Any],
    metrics: Sequence[str] | None = None,
    key_field: str | None = None,
) -> list[MetricRow]:
    """
    Normalize raw rows into MetricRows.

    Args:
        raw_rows: Row dicts as returned by the data source
        metrics: Metric names to keep (default: every numeric field);
            missing ones read as 0
        key_field: Field holding the dimension value (default: first of KEY_FIELDS)

    Returns:
        Rows in input order; a repeated key is merged into its first
        occurrence by summing metrics
    """
    rows: dict[str, dict[str, float]] = {}
    for raw in raw_rows or []:
        if not isinstance(raw, dict):
            logger.warning(f"Skipping non-object row of type {type(raw).__name__}")
            continue
        key = _row_key(raw, key_field)
        if key is None:
            logger.debug("Skipping row without a dimension key")
            continue

        values = _row_metrics(raw, metrics, key_field)
        if key in rows:
            logger.warning(f"Duplicate key {key!r} in one period; summing metrics")
            merged = rows[key]
            for name, value in values.items():
                merged[name] = merged.get(name, 0) + value
        else:
            rows[key] = values

    return [MetricRow(key=key, metrics=values) for key, values in rows.items()]


def parse_bucket_rows(raw_rows: Iterable[Any], bucket_keys: Sequence[str]) -> list[BucketRow]:
    """Normalize position-ranges rows (one per day) into BucketRows."""
    return [
        BucketRow(key=row.key, counts={bucket: row.get(bucket) for bucket in bucket_keys})
        for row in parse_metric_rows(raw_rows, metrics=bucket_keys)
    ]


def _load_json(payload: Any) -> Any:
    if isinstance(payload, (str, bytes)):
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Analytics payload is not valid JSON")
            return None
    return payload


def extract_row_sets(payload: Any) -> RowSetPayload:
    """
    Raw current/previous row lists from any accepted payload shape.

    Returns an empty RowSetPayload when nothing usable is found.
    """
    payload = _load_json(payload)
    if not isinstance(payload, dict):
        return RowSetPayload()

    try:
        if "data" in payload:
            return AnalyticsResponse.model_validate(payload).data
        if "current" in payload or "previous" in payload:
            return RowSetPayload.model_validate(payload)
        if "rows" in payload:
            return RowSetPayload(current=LegacyTablePayload.model_validate(payload).rows)
    except ValidationError as exc:
        logger.warning(f"Unusable analytics payload: {exc.error_count()} validation errors")
        return RowSetPayload()

    logger.warning("Analytics payload has no row sets")
    return RowSetPayload()


def parse_period_rows(
    payload: Any,
    metrics: Sequence[str] | None = None,
    key_field: str | None = None,
) -> PeriodRows:
    """Canonical current/previous MetricRows for one dimension payload."""
    row_sets = extract_row_sets(payload)
    return PeriodRows(
        current=parse_metric_rows(row_sets.current, metrics, key_field),
        previous=parse_metric_rows(row_sets.previous, metrics, key_field),
    )

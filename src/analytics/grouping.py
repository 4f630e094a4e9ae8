"""
Content grouping of page paths.

Leaf page rows are bucketed under a content group key derived from
their normalized path. A taxonomy rule (longest prefix wins) takes
precedence; otherwise the first meaningful path segment is the group.
Paths with no segment ("/") form a singleton group keyed by the path.
"""

import logging
from collections.abc import Sequence
from urllib.parse import urlsplit

from .aggregator import sum_metrics
from .config import EngineConfig, TaxonomyRule
from .models import Entity, MetricRow, MetricValue
from .trend import calculate_trend

logger = logging.getLogger(__name__)

SITE_PREFIX = "sc-domain:"


def normalize_path(raw: str) -> str:
    """
    Reduce a page key to a comparable path.

    Accepts absolute URLs, bare hosts ("example.com/blog") and plain paths,
    with or without a leading slash. A first segment without a dot is a
    path segment, not a host. The query string, fragment and trailing
    slash are dropped and the result is lowercased.
    """
    value = (raw or "").strip()
    if value.startswith(SITE_PREFIX):
        value = value[len(SITE_PREFIX):]

    if "://" in value:
        path = urlsplit(value).path
    elif "." in value.split("/", 1)[0]:
        path = urlsplit("https://" + value).path
    else:
        path = value.split("?", 1)[0].split("#", 1)[0]

    path = path.lower().rstrip("/")
    if not path.startswith("/"):
        path = "/" + path
    return path


def _segments(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _match_taxonomy(path: str, taxonomy: Sequence[TaxonomyRule]) -> TaxonomyRule | None:
    best: TaxonomyRule | None = None
    for rule in taxonomy:
        prefix = rule.prefix
        if path == prefix or prefix == "/" or path.startswith(prefix + "/"):
            if best is None or len(prefix) > len(best.prefix):
                best = rule
    return best


def group_key_for(raw_path: str, config: EngineConfig | None = None) -> str:
    """Content group key for a page key."""
    config = config or EngineConfig()
    path = normalize_path(raw_path)

    rule = _match_taxonomy(path, config.taxonomy)
    if rule is not None:
        return rule.group

    for segment in _segments(path):
        if segment not in config.ignored_segments:
            return f"/{segment}"
    return path


def display_name_for(group_key: str, config: EngineConfig | None = None) -> str:
    """Human label for a group key: "/blog-posts" -> "Blog Posts"."""
    config = config or EngineConfig()
    for rule in config.taxonomy:
        if rule.group == group_key and rule.display_name:
            return rule.display_name

    cleaned = group_key.lstrip("/").replace("-", " ").replace("_", " ")
    if not cleaned:
        return group_key
    return " ".join(word[:1].upper() + word[1:].lower() for word in cleaned.split(" ") if word)


def group_rows(rows: Sequence[MetricRow], config: EngineConfig | None = None) -> list[MetricRow]:
    """
    Aggregate leaf rows into one row per content group.

    Tracked metrics are summed; averaged metrics (e.g. position) are the
    mean over members that report a positive value, to one decimal.

    Returns:
        Group rows ordered by the first tracked metric descending, then key
    """
    config = config or EngineConfig()

    members: dict[str, list[MetricRow]] = {}
    for row in rows:
        if not row.key:
            continue
        members.setdefault(group_key_for(row.key, config), []).append(row)

    grouped = []
    for group_key, group_members in members.items():
        metrics = sum_metrics(group_members, config.tracked_metrics)
        for metric in config.averaged_metrics:
            values = [m.get(metric) for m in sorted(group_members, key=lambda r: r.key) if m.get(metric) > 0]
            metrics[metric] = round(sum(values) / len(values), 1) if values else 0
        grouped.append(MetricRow(key=group_key, metrics=metrics))

    primary = config.tracked_metrics[0] if config.tracked_metrics else None
    grouped.sort(key=lambda row: row.key)
    if primary:
        grouped.sort(key=lambda row: row.get(primary), reverse=True)

    logger.debug(f"Grouped {len(rows)} rows into {len(grouped)} content groups")
    return grouped


def build_group_entities(
    current: Sequence[MetricRow],
    previous: Sequence[MetricRow],
    config: EngineConfig | None = None,
) -> list[Entity]:
    """
    Content group entities with trends.

    Both periods are grouped independently; each group trend compares
    the two aggregated totals, never an average of member trends.
    """
    config = config or EngineConfig()
    current_groups = group_rows(current, config)
    previous_by_key = {row.key: row for row in group_rows(previous, config)}

    entities = []
    for group in current_groups:
        prev = previous_by_key.get(group.key)
        metrics = {}
        for metric in list(config.tracked_metrics) + list(config.averaged_metrics):
            if metric not in group.metrics:
                continue
            previous_value = prev.get(metric) if prev is not None else 0
            metrics[metric] = MetricValue(
                value=group.get(metric),
                trend=calculate_trend(group.get(metric), previous_value),
            )
        entities.append(
            Entity(
                key=group.key,
                display_name=display_name_for(group.key, config),
                metrics=metrics,
            )
        )
    return entities

"""Engine configuration loaded from config/analytics.yaml."""

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml
from jsonschema import ValidationError, validate

from .normalizer import validate_bands

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "analytics.yaml"
SCHEMA_PATH = Path(__file__).resolve().parents[2] / "schemas" / "analytics.schema.json"


@dataclass(frozen=True)
class TaxonomyRule:
    """Maps every normalized path under prefix to one content group."""

    prefix: str
    group: str
    display_name: str | None = None


@dataclass(frozen=True)
class BucketDefinition:
    key: str  # field name in position-ranges rows, e.g. pos1_3
    label: str


@dataclass(frozen=True)
class BandPreset:
    """Band layout for one overlay chart: metric name -> (start, end)."""

    name: str
    bands: dict[str, tuple[float, float]] = field(default_factory=dict)

    @property
    def metrics(self) -> list[str]:
        return list(self.bands)


DEFAULT_POSITION_BUCKETS = (
    BucketDefinition(key="pos1_3", label="Pos 1-3"),
    BucketDefinition(key="pos4_20", label="Pos 4-20"),
    BucketDefinition(key="pos20_plus", label="Pos 20+"),
)


def _default_presets() -> dict[str, BandPreset]:
    return {
        "overview": BandPreset(
            name="overview",
            bands={"impressions": (50.0, 100.0), "clicks": (0.0, 50.0)},
        ),
    }


@dataclass(frozen=True)
class EngineConfig:
    tracked_metrics: tuple[str, ...] = ("impressions", "clicks")
    averaged_metrics: tuple[str, ...] = ("position",)
    ascending_metrics: tuple[str, ...] = ("position",)
    ignored_segments: tuple[str, ...] = ()
    taxonomy: tuple[TaxonomyRule, ...] = ()
    position_buckets: tuple[BucketDefinition, ...] = DEFAULT_POSITION_BUCKETS
    band_presets: dict[str, BandPreset] = field(default_factory=_default_presets)
    band_inset: float = 0.0

    def preset(self, name: str) -> BandPreset | None:
        return self.band_presets.get(name)


def _resolve_path(config_path: Path | None) -> Path:
    if config_path is not None:
        return Path(config_path)
    override = os.environ.get("ANALYTICS_CONFIG_PATH")
    return Path(override) if override else CONFIG_PATH


def _parse_config(data: dict) -> EngineConfig:
    grouping = data.get("grouping") or {}
    taxonomy = tuple(
        TaxonomyRule(
            prefix=rule["prefix"].rstrip("/").lower() or "/",
            group=rule["group"],
            display_name=rule.get("display_name"),
        )
        for rule in grouping.get("taxonomy") or []
    )

    buckets = tuple(
        BucketDefinition(key=bucket["key"], label=bucket.get("label", bucket["key"]))
        for bucket in data.get("position_buckets") or []
    ) or DEFAULT_POSITION_BUCKETS

    presets = _default_presets()
    for name, bands in (data.get("bands") or {}).items():
        presets[name] = BandPreset(
            name=name,
            bands={metric: (float(band[0]), float(band[1])) for metric, band in bands.items()},
        )

    defaults = EngineConfig()
    return EngineConfig(
        tracked_metrics=tuple(data.get("tracked_metrics") or defaults.tracked_metrics),
        averaged_metrics=tuple(data.get("averaged_metrics", defaults.averaged_metrics)),
        ascending_metrics=tuple(data.get("ascending_metrics", defaults.ascending_metrics)),
        ignored_segments=tuple(s.lower() for s in grouping.get("ignored_segments") or []),
        taxonomy=taxonomy,
        position_buckets=buckets,
        band_presets=presets,
        band_inset=float(data.get("band_inset", 0.0)),
    )


@lru_cache(maxsize=8)
def _load_cached(path_str: str) -> EngineConfig:
    path = Path(path_str)
    if not path.exists():
        logger.info(f"No analytics config at {path}, using defaults")
        return EngineConfig()

    with open(path) as f:
        data = yaml.safe_load(f)
    if not data:
        return EngineConfig()

    if SCHEMA_PATH.exists():
        try:
            schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
            validate(instance=data, schema=schema)
        except ValidationError as exc:
            logger.error("analytics.yaml failed schema validation: %s", exc.message)
            raise

    config = _parse_config(data)

    for preset in config.band_presets.values():
        validate_bands(list(preset.bands.values()))

    return config


def load_config(config_path: Path | None = None) -> EngineConfig:
    """Load engine configuration, falling back to defaults when no file exists."""
    return _load_cached(str(_resolve_path(config_path)))


def clear_config_cache() -> None:
    _load_cached.cache_clear()

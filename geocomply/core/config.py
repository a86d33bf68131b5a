"""GeoComply configuration — compliance rules, optimization, archive and storage settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path


@dataclass(frozen=True)
class ComplianceRules:
    """Thresholds of the geolocation rule set (WGS 84 / EPSG:4326)."""

    min_latitude: float = -90.0
    max_latitude: float = 90.0
    min_longitude: float = -180.0
    max_longitude: float = 180.0
    min_decimal_places: int = 6
    min_ring_vertices: int = 4          # including the closing duplicate
    large_plot_threshold_ha: float = 4.0
    allowed_geometry_types: tuple[str, ...] = (
        "Point",
        "MultiPoint",
        "Polygon",
        "MultiPolygon",
    )


@dataclass(frozen=True)
class OptimizationDefaults:
    """Defaults and limits for export-time geometry optimization."""

    small_plot_threshold_ha: float = 4.0
    default_simplify_tolerance: float = 0.0001
    max_simplify_tolerance: float = 0.001
    fix_precision: int = 6


@dataclass(frozen=True)
class ArchiveConfig:
    """Entry names and compression of the export archive."""

    geojson_name: str = "geolocation.geojson"
    summary_name: str = "summary.csv"
    report_name: str = "validation_report.txt"
    audit_log_name: str = "audit_log.json"
    compress_level: int = 9
    filename_prefix: str = "eudr-export"


@dataclass(frozen=True)
class StorageConfig:
    """Local collaborator settings used by the CLI."""

    export_dir: Path = Path("geocomply_exports")
    public_base_url: str = ""
    history_db_path: Path = Path("geocomply_exports.db")


@dataclass(frozen=True)
class GeoComplyConfig:
    """Top-level GeoComply configuration."""

    rules: ComplianceRules = field(default_factory=ComplianceRules)
    optimization: OptimizationDefaults = field(default_factory=OptimizationDefaults)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


DEFAULT_CONFIG = GeoComplyConfig()


def load_config(base: GeoComplyConfig = DEFAULT_CONFIG) -> GeoComplyConfig:
    """Overlay storage settings from ``GEOCOMPLY_*`` environment variables."""
    storage = base.storage
    if os.environ.get("GEOCOMPLY_EXPORT_DIR"):
        storage = replace(storage, export_dir=Path(os.environ["GEOCOMPLY_EXPORT_DIR"]))
    if os.environ.get("GEOCOMPLY_PUBLIC_URL"):
        storage = replace(storage, public_base_url=os.environ["GEOCOMPLY_PUBLIC_URL"])
    if os.environ.get("GEOCOMPLY_HISTORY_DB"):
        storage = replace(storage, history_db_path=Path(os.environ["GEOCOMPLY_HISTORY_DB"]))
    return replace(base, storage=storage)

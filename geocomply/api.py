"""One-liner API for GeoComply — ``import geocomply; geocomply.validate("plots.geojson")``.

Provides convenience functions that wrap the validation, repair and
export pipeline for scripting, notebooks, and CLI usage.

Examples
--------
>>> import geocomply
>>> outcome = geocomply.validate("plots.geojson")
>>> geocomply.fix("plots.geojson", "fixed.geojson")
>>> geocomply.export("places.json", "export.zip", convert_small_to_points=True)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import geopandas as gpd

from geocomply.core.codec import dumps_collection, parse_collection, parse_records
from geocomply.core.exceptions import DataLoadError
from geocomply.core.models import ExportArtifact, FeatureCollection, SourceRecord, ValidationOutcome
from geocomply.core.schemas import ExportRequest
from geocomply.archive.assembler import ExportAssembler
from geocomply.fixes.fixer import GeometryFixer
from geocomply.validation.validator import GeometryValidator

logger = logging.getLogger("geocomply.api")

RAW_SUFFIXES = {".geojson", ".json"}
SUPPORTED_SUFFIXES = RAW_SUFFIXES | {".shp", ".gpkg", ".gml", ".kml"}


# ── Loading ─────────────────────────────────────────────────────────────


def _check_path(file_path: str | Path, supported: set[str]) -> Path:
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in supported:
        raise ValueError(
            f"Unsupported format '{suffix}'. Supported: {', '.join(sorted(supported))}"
        )
    return path


def load_collection(file_path: str | Path) -> FeatureCollection:
    """Read a geospatial file into a FeatureCollection.

    GeoJSON is decoded as written, so unclosed rings and low-precision
    coordinates reach the validator untouched. Other formats go through
    geopandas, whose drivers close rings on read.
    """
    path = _check_path(file_path, SUPPORTED_SUFFIXES)
    if path.suffix.lower() in RAW_SUFFIXES:
        collection = parse_collection(path.read_bytes())
    else:
        try:
            gdf = gpd.read_file(str(path))
        except Exception as exc:
            raise DataLoadError(f"Cannot read {path.name}: {exc}") from exc
        if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
            logger.info("Reprojecting %s from %s to EPSG:4326", path.name, gdf.crs)
            gdf = gdf.to_crs(epsg=4326)
        collection = parse_collection(gdf.to_json(drop_id=True))
    logger.info("Loaded %d features from %s", len(collection), path.name)
    return collection


def load_records(file_path: str | Path) -> list[SourceRecord]:
    """Read a JSON array of production-place records."""
    path = _check_path(file_path, {".json"})
    records = parse_records(path.read_bytes())
    logger.info("Loaded %d records from %s", len(records), path.name)
    return records


# ── Public API ──────────────────────────────────────────────────────────


def validate(file_path: str | Path) -> ValidationOutcome:
    """Validate a geospatial file against the compliance rule set."""
    return GeometryValidator().validate(load_collection(file_path))


def fix(file_path: str | Path, output: str | Path) -> ValidationOutcome:
    """Repair closure and precision, save as GeoJSON, and re-validate.

    Returns the validation outcome of the repaired collection.
    """
    fixed = GeometryFixer().fix(load_collection(file_path))
    out_path = Path(output)
    out_path.write_text(dumps_collection(fixed), encoding="utf-8")
    logger.info("Saved to %s", out_path)
    return GeometryValidator().validate(fixed)


def export(
    records_path: str | Path,
    output: str | Path,
    *,
    convert_small_to_points: bool = False,
    simplify_tolerance: Optional[float] = None,
    include_audit_log: bool = False,
) -> ExportArtifact:
    """Assemble a compliance archive from a records file and write it to ``output``.

    Raises ``pydantic.ValidationError`` for out-of-range options.
    """
    request = ExportRequest(
        convert_small_to_points=convert_small_to_points,
        simplify_tolerance=simplify_tolerance,
        include_audit_log=include_audit_log,
    )
    artifact = ExportAssembler().assemble(load_records(records_path), request.to_options())
    out_path = Path(output)
    out_path.write_bytes(artifact.archive)
    logger.info("Saved %d bytes to %s", artifact.byte_size, out_path)
    return artifact


def outcome_summary(outcome: ValidationOutcome) -> str:
    """Return a human-readable summary of a validation outcome."""
    lines = [
        "GeoComply Validation Results",
        f"   Features:  {outcome.feature_count}",
        f"   Status:    {'VALID' if outcome.valid else 'INVALID'}",
        f"   Errors:    {len(outcome.errors)}",
        f"   Warnings:  {len(outcome.warnings)}",
    ]
    breakdown: dict[str, int] = {}
    for issue in outcome.errors:
        breakdown[issue.code.value] = breakdown.get(issue.code.value, 0) + 1
    if breakdown:
        lines.append("   Error breakdown:")
        for code, count in breakdown.items():
            lines.append(f"     • {code}: {count}")
    return "\n".join(lines)


def outcome_json(outcome: ValidationOutcome) -> str:
    return json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False)

"""Renderers for the files inside an export archive.

- ``geolocation.geojson``   — the optimized FeatureCollection
- ``summary.csv``           — one row per production place
- ``validation_report.txt`` — status, errors, requirements checklist
- ``audit_log.json``        — optional provenance of every place
"""

from __future__ import annotations

import csv
import io
import json
import zipfile
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from geocomply.core.codec import dumps_collection
from geocomply.core.models import (
    Coordinate,
    FeatureCollection,
    Geometry,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
    Ring,
    SourceRecord,
    ValidationOutcome,
)

SUMMARY_HEADERS = [
    "ProductionPlace",
    "Supplier",
    "Country",
    "Area(ha)",
    "GeometryType",
    "Coordinates",
    "DateCollected",
    "ValidationStatus",
]

PREVIEW_COORDINATES = 3

# Advisory text; these lines are printed whatever the outcome of each rule.
REQUIREMENTS_CHECKLIST = [
    "✓ Coordinate system: WGS84 (EPSG:4326)",
    "✓ Precision: 6+ decimal places",
    "✓ Latitude range: -90 to +90",
    "✓ Longitude range: -180 to +180",
    "✓ Polygon closure: First = Last point",
    "✓ No self-intersections",
    "✓ No polygon holes",
    "✓ No LineString geometry",
]


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def collected_date(value: Optional[datetime]) -> str:
    """Calendar date in UTC. Naive timestamps are taken as UTC already."""
    if value is None:
        return ""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


# ── GeoJSON ─────────────────────────────────────────────────────────────


def render_geojson(collection: FeatureCollection) -> bytes:
    return dumps_collection(collection, indent=2).encode("utf-8")


# ── CSV summary ─────────────────────────────────────────────────────────


def _open_ring(ring: Ring) -> list[Coordinate]:
    if len(ring) > 1 and ring[0] == ring[-1]:
        return list(ring[:-1])
    return list(ring)


def preview_coordinates(geometry: Optional[Geometry]) -> list[Coordinate]:
    """Distinct vertices shown in the summary, closing duplicate excluded."""
    if isinstance(geometry, Point):
        return [geometry.coordinate]
    if isinstance(geometry, MultiPoint):
        return list(geometry.coordinates)
    if isinstance(geometry, Polygon):
        return _open_ring(geometry.outer)
    if isinstance(geometry, MultiPolygon):
        first = geometry.polygons[0] if geometry.polygons else ()
        return _open_ring(first[0]) if first else []
    return []


def format_coordinate_preview(geometry: Optional[Geometry]) -> str:
    coords = preview_coordinates(geometry)
    text = "; ".join(
        f"{lat:.6f},{lng:.6f}" for lng, lat in coords[:PREVIEW_COORDINATES]
    )
    if len(coords) > PREVIEW_COORDINATES:
        text += "..."
    return text


def render_summary_csv(
    records: Sequence[SourceRecord],
    collection: FeatureCollection,
) -> str:
    """One row per feature, paired with its source record by position."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(SUMMARY_HEADERS)
    for record, feature in zip(records, collection):
        geometry = feature.geometry
        writer.writerow([
            record.place_name,
            record.source_organization_name,
            record.country,
            format_number(record.area_hectares),
            geometry.kind if geometry is not None else "",
            format_coordinate_preview(geometry),
            collected_date(record.created_at),
            "VALID",
        ])
    return buf.getvalue()


# ── Validation report ───────────────────────────────────────────────────


def render_validation_report(
    outcome: ValidationOutcome,
    feature_count: int,
    generated_at: datetime,
) -> str:
    lines = [
        "EUDR GeoJSON Validation Report",
        "==============================",
        f"Generated: {generated_at.isoformat()}",
        f"Features: {feature_count}",
        f"Status: {'VALID' if outcome.valid else 'INVALID'}",
        "",
    ]

    if outcome.errors:
        lines.append("Errors:")
        lines.append("-------")
        for err in outcome.errors:
            lines.append(f"- {err.feature_name or 'Unknown'}: {err.message}")
        lines.append("")

    lines.append("EUDR Requirements Check:")
    lines.append("------------------------")
    lines.extend(REQUIREMENTS_CHECKLIST)
    lines.append("")
    lines.append("File ready for EU Information System upload.")
    return "\n".join(lines)


# ── Provenance log ──────────────────────────────────────────────────────


def _provenance_entry(record: SourceRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "name": record.place_name,
        "supplierId": record.supplier_id,
        "supplierName": record.source_organization_name,
        "areaHectares": record.area_hectares,
        "geometryType": record.geometry_kind,
        "country": record.country,
        "createdAt": _isoformat(record.created_at),
        "updatedAt": _isoformat(record.updated_at),
    }


def render_provenance_log(
    records: Sequence[SourceRecord],
    generated_at: datetime,
) -> str:
    log = {
        "generatedAt": generated_at.isoformat(),
        "totalPlaces": len(records),
        "entries": [_provenance_entry(r) for r in records],
    }
    return json.dumps(log, indent=2, ensure_ascii=False)


# ── Archive ─────────────────────────────────────────────────────────────


def build_archive(
    files: dict[str, bytes],
    generated_at: datetime,
    compress_level: int = 9,
) -> bytes:
    """Zip ``files`` in insertion order with deflate compression."""
    buf = io.BytesIO()
    timestamp = generated_at.timetuple()[:6]
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            info = zipfile.ZipInfo(name, date_time=timestamp)
            info.compress_type = zipfile.ZIP_DEFLATED
            zf.writestr(info, data, compresslevel=compress_level)
    return buf.getvalue()

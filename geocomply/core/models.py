"""Core data models for the GeoComply pipeline.

Defines the data structures that flow through the system:
  SourceRecord → Feature → ValidationOutcome → ExportArtifact → ExportResult

Every model is frozen; pipeline stages build new features instead of
mutating the ones they receive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union

# ── Geometry ────────────────────────────────────────────────────────────

Coordinate = tuple[float, float]    # (lng, lat)
Ring = tuple[Coordinate, ...]


@dataclass(frozen=True)
class Point:
    coordinate: Coordinate

    kind: ClassVar[str] = "Point"


@dataclass(frozen=True)
class MultiPoint:
    coordinates: tuple[Coordinate, ...]

    kind: ClassVar[str] = "MultiPoint"


@dataclass(frozen=True)
class Polygon:
    """A polygon as a list of rings. The first ring is the outer boundary."""

    rings: tuple[Ring, ...]

    kind: ClassVar[str] = "Polygon"

    @property
    def outer(self) -> Ring:
        return self.rings[0] if self.rings else ()


@dataclass(frozen=True)
class MultiPolygon:
    polygons: tuple[tuple[Ring, ...], ...]

    kind: ClassVar[str] = "MultiPolygon"


@dataclass(frozen=True)
class UnsupportedGeometry:
    """Any geometry kind outside the rule set (``LineString`` and friends).

    Everything besides ``type`` is carried verbatim in ``members`` (the
    ``coordinates`` of a LineString, the ``geometries`` of a
    GeometryCollection, ...) so the feature round-trips through the
    pipeline untouched and is rejected by validation.
    """

    type_name: str
    members: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def kind(self) -> str:
        return self.type_name


Geometry = Union[Point, MultiPoint, Polygon, MultiPolygon, UnsupportedGeometry]


def iter_rings(geometry: Geometry) -> list[tuple[int, int, Ring]]:
    """Return ``(polygon_index, ring_index, ring)`` for every polygon ring."""
    if isinstance(geometry, Polygon):
        return [(0, i, ring) for i, ring in enumerate(geometry.rings)]
    if isinstance(geometry, MultiPolygon):
        return [
            (p, i, ring)
            for p, rings in enumerate(geometry.polygons)
            for i, ring in enumerate(rings)
        ]
    return []


def iter_coordinates(geometry: Geometry) -> list[Coordinate]:
    """Flatten every coordinate of a supported geometry, rings included."""
    if isinstance(geometry, Point):
        return [geometry.coordinate]
    if isinstance(geometry, MultiPoint):
        return list(geometry.coordinates)
    if isinstance(geometry, (Polygon, MultiPolygon)):
        return [c for _, _, ring in iter_rings(geometry) for c in ring]
    return []


# ── Features ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FeatureProperties:
    """The properties the pipeline reads, plus a pass-through bag.

    On the wire these are ``ProductionPlace``, ``Area`` and
    ``ProducerCountry``.
    """

    place_name: Optional[str] = None
    area_hectares: Optional[float] = None
    producer_country: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class Feature:
    """One production place.

    A feature whose geometry could not be decoded has ``geometry=None`` and
    the reason in ``geometry_error``; the submitted geometry is kept in
    ``raw_geometry`` so it is written back unchanged. ``members`` holds the
    other top-level keys of the feature object (``id``, ``bbox``, ...).
    """

    geometry: Optional[Geometry]
    properties: FeatureProperties = field(default_factory=FeatureProperties)
    members: dict[str, Any] = field(default_factory=dict, hash=False)
    geometry_error: Optional[str] = None
    raw_geometry: Any = field(default=None, hash=False)

    @property
    def name(self) -> Optional[str]:
        return self.properties.place_name

    @property
    def area_hectares(self) -> Optional[float]:
        return self.properties.area_hectares


@dataclass(frozen=True)
class FeatureCollection:
    features: tuple[Feature, ...] = ()

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self):
        return iter(self.features)

    def __getitem__(self, index: int) -> Feature:
        return self.features[index]


# ── Validation ──────────────────────────────────────────────────────────


class ErrorCode(Enum):
    """Machine-readable codes for validation issues."""

    INVALID_GEOJSON = "INVALID_GEOJSON"
    INVALID_GEOMETRY = "INVALID_GEOMETRY"
    LINESTRING_NOT_ALLOWED = "LINESTRING_NOT_ALLOWED"   # any disallowed kind
    COORDINATE_OUT_OF_BOUNDS = "COORDINATE_OUT_OF_BOUNDS"
    PRECISION_TOO_LOW = "PRECISION_TOO_LOW"
    POLYGON_NOT_CLOSED = "POLYGON_NOT_CLOSED"
    POLYGON_TOO_FEW_VERTICES = "POLYGON_TOO_FEW_VERTICES"
    POLYGON_HAS_HOLES = "POLYGON_HAS_HOLES"
    LARGE_PLOT_NEEDS_POLYGON = "LARGE_PLOT_NEEDS_POLYGON"


@dataclass(frozen=True)
class ValidationIssue:
    code: ErrorCode
    message: str
    feature_index: int
    feature_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "featureId": f"feature-{self.feature_index}",
            "featureName": self.feature_name,
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """Errors and warnings collected across every feature of a collection."""

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    feature_count: int = 0

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def invalid_feature_indices(self) -> list[int]:
        return sorted({e.feature_index for e in self.errors})

    def codes(self) -> list[ErrorCode]:
        return [e.code for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


# ── Export ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExportOptions:
    """What an export should contain and how geometry may be reduced."""

    supplier_ids: tuple[str, ...] = ()
    commodity: Optional[str] = None
    convert_small_to_points: bool = False
    simplify_tolerance: Optional[float] = None
    include_provenance_log: bool = False
    small_plot_threshold_hectares: float = 4.0


@dataclass(frozen=True)
class SourceRecord:
    """A production place as delivered by the query/filter collaborator."""

    id: str
    place_name: str
    area_hectares: float
    geometry_kind: str                  # "POINT" or "POLYGON"
    geometry: Optional[Geometry]
    country: str
    source_organization_name: str
    supplier_id: str = ""
    commodity: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ExportSummary:
    total_area_hectares: float
    feature_count: int
    by_country: dict[str, int]
    byte_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalArea": self.total_area_hectares,
            "totalPlaces": self.feature_count,
            "byCountry": dict(self.by_country),
            "byteSize": self.byte_size,
        }


@dataclass(frozen=True)
class ExportArtifact:
    """Everything one export invocation produced."""

    files: dict[str, bytes]
    archive: bytes
    validation: ValidationOutcome
    changes: tuple[str, ...]
    summary: ExportSummary
    collection: FeatureCollection

    @property
    def byte_size(self) -> int:
        return len(self.archive)


@dataclass(frozen=True)
class ExportResult:
    """What the export service hands back to its caller."""

    success: bool
    download_url: Optional[str] = None
    file_size: int = 0
    valid_features: int = 0
    invalid_features: int = 0
    errors: tuple[dict[str, str], ...] = ()
    summary: Optional[ExportSummary] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "downloadUrl": self.download_url,
            "fileSize": self.file_size,
            "validationReport": {
                "validFeatures": self.valid_features,
                "invalidFeatures": self.invalid_features,
                "errors": [dict(e) for e in self.errors],
            },
            "summary": self.summary.to_dict() if self.summary else None,
        }

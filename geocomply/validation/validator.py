"""Compliance validation — check submitted geometry against the rule set.

For every feature the validator:
1. Checks that a geometry is present
2. Checks that the geometry kind is allowed
3. Checks coordinate bounds and decimal precision
4. Checks polygon rings (closure, vertex count, holes)
5. Checks that large plots are not submitted as points

Issues are collected for every feature; one feature failing never stops
the evaluation of the others. Precision problems are warnings and never
make a collection invalid.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal

from geocomply.core.codec import parse_collection
from geocomply.core.config import DEFAULT_CONFIG, ComplianceRules
from geocomply.core.models import (
    Coordinate,
    ErrorCode,
    Feature,
    FeatureCollection,
    Geometry,
    MultiPolygon,
    Point,
    Polygon,
    Ring,
    UnsupportedGeometry,
    ValidationIssue,
    ValidationOutcome,
    iter_coordinates,
)

logger = logging.getLogger("geocomply.validation")


def count_decimal_places(value: float) -> int:
    """Number of fractional digits in the shortest decimal form of ``value``.

    ``-60.123456`` → 6, ``1.0`` → 0, ``1e-07`` → 7.
    """
    if not math.isfinite(value):
        return 0
    exponent = Decimal(repr(float(value))).normalize().as_tuple().exponent
    return max(0, -exponent)


class _Collector:
    """Accumulates issues for one feature."""

    def __init__(self, index: int, name: str | None):
        self.index = index
        self.name = name
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, code: ErrorCode, message: str) -> None:
        self.errors.append(ValidationIssue(code, message, self.index, self.name))

    def warning(self, code: ErrorCode, message: str) -> None:
        self.warnings.append(ValidationIssue(code, message, self.index, self.name))


class GeometryValidator:
    """Applies the geolocation rule set to a FeatureCollection.

    Usage::

        v = GeometryValidator()
        outcome = v.validate(collection)
        if not outcome.valid:
            for issue in outcome.errors:
                print(issue.code.value, issue.message)
    """

    def __init__(self, rules: ComplianceRules | None = None):
        self.rules = rules or DEFAULT_CONFIG.rules

    # ── Public API ──────────────────────────────────────────────────

    def validate(self, collection: FeatureCollection) -> ValidationOutcome:
        """Validate every feature and return all errors and warnings."""
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        for index, feature in enumerate(collection):
            issues = self.validate_feature(feature, index)
            errors.extend(issues.errors)
            warnings.extend(issues.warnings)

        outcome = ValidationOutcome(
            errors=tuple(errors),
            warnings=tuple(warnings),
            feature_count=len(collection),
        )
        if outcome.valid:
            logger.info(
                "Validated %d features: valid (%d warnings)",
                len(collection),
                len(warnings),
            )
        else:
            logger.warning(
                "Validated %d features: %d errors on %d features",
                len(collection),
                len(errors),
                len(outcome.invalid_feature_indices),
            )
        return outcome

    def validate_document(self, document: dict | str | bytes) -> ValidationOutcome:
        """Decode and validate a raw GeoJSON document.

        Raises ``StructuralError`` if it is not a FeatureCollection.
        """
        return self.validate(parse_collection(document))

    def validate_feature(self, feature: Feature, index: int = 0) -> _Collector:
        issues = _Collector(index, feature.name)
        geometry = feature.geometry

        # Rule 1: presence
        if feature.geometry_error is not None:
            issues.error(
                ErrorCode.INVALID_GEOMETRY, f"Invalid geometry: {feature.geometry_error}"
            )
            return issues
        if geometry is None:
            issues.error(ErrorCode.INVALID_GEOMETRY, "Feature missing geometry")
            return issues

        # Rule 2: allowed kind
        if isinstance(geometry, UnsupportedGeometry) or (
            geometry.kind not in self.rules.allowed_geometry_types
        ):
            issues.error(
                ErrorCode.LINESTRING_NOT_ALLOWED,
                f'Geometry type "{geometry.kind}" is not allowed. Use Point or Polygon.',
            )
            return issues

        # Rules 3-4: every coordinate
        for coord in iter_coordinates(geometry):
            self._check_coordinate(coord, issues)

        # Rules 5-7: rings
        if isinstance(geometry, Polygon):
            self._check_polygon(geometry.rings, issues)
        elif isinstance(geometry, MultiPolygon):
            if not geometry.polygons:
                issues.error(ErrorCode.INVALID_GEOMETRY, "MultiPolygon has no polygons")
            for rings in geometry.polygons:
                self._check_polygon(rings, issues)

        # Rule 8: large plots need polygons
        self._check_plot_size(geometry, feature.area_hectares, issues)
        return issues

    # ── Individual rules ────────────────────────────────────────────

    def _check_coordinate(self, coord: Coordinate, issues: _Collector) -> None:
        lng, lat = coord
        r = self.rules

        if not (r.min_latitude <= lat <= r.max_latitude):
            issues.error(
                ErrorCode.COORDINATE_OUT_OF_BOUNDS,
                f"Latitude {lat} is outside valid range "
                f"({r.min_latitude:g} to {r.max_latitude:g})",
            )
        if not (r.min_longitude <= lng <= r.max_longitude):
            issues.error(
                ErrorCode.COORDINATE_OUT_OF_BOUNDS,
                f"Longitude {lng} is outside valid range "
                f"({r.min_longitude:g} to {r.max_longitude:g})",
            )

        lat_places = count_decimal_places(lat)
        lng_places = count_decimal_places(lng)
        if lat_places < r.min_decimal_places or lng_places < r.min_decimal_places:
            issues.warning(
                ErrorCode.PRECISION_TOO_LOW,
                f"Coordinates have less than {r.min_decimal_places} decimal places "
                f"(found {lat_places}/{lng_places})",
            )

    def _check_polygon(self, rings: tuple[Ring, ...], issues: _Collector) -> None:
        if not rings:
            issues.error(ErrorCode.INVALID_GEOMETRY, "Polygon has no rings")
            return

        for ring_index, ring in enumerate(rings):
            if ring and ring[0] != ring[-1]:
                issues.error(
                    ErrorCode.POLYGON_NOT_CLOSED,
                    "Polygon must be closed (first and last coordinates must match)",
                )
            if len(ring) < self.rules.min_ring_vertices:
                issues.error(
                    ErrorCode.POLYGON_TOO_FEW_VERTICES,
                    f"Polygon requires at least {self.rules.min_ring_vertices} "
                    f"vertices (including closure)",
                )
            if ring_index > 0:
                issues.error(
                    ErrorCode.POLYGON_HAS_HOLES,
                    "Polygons with holes are not allowed",
                )

    def _check_plot_size(
        self,
        geometry: Geometry,
        area: float | None,
        issues: _Collector,
    ) -> None:
        threshold = self.rules.large_plot_threshold_ha
        if isinstance(geometry, Point) and area is not None and area > threshold:
            issues.error(
                ErrorCode.LARGE_PLOT_NEEDS_POLYGON,
                f"Plots larger than {threshold:g} hectares require polygon "
                f"geometry, not a point",
            )


def validate(collection: FeatureCollection) -> ValidationOutcome:
    """Validate with the default rule set."""
    return GeometryValidator().validate(collection)

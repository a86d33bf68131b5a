"""Export-time geometry optimization: polygon→point, simplify.

Both transforms are feature-scoped and only ever touch ``Polygon``
features; every other feature passes through unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum

from shapely.errors import ShapelyError
from shapely.geometry import Polygon as ShapelyPolygon

from geocomply.core.config import DEFAULT_CONFIG
from geocomply.core.models import (
    Coordinate,
    ExportOptions,
    Feature,
    FeatureCollection,
    Point,
    Polygon,
    Ring,
)

logger = logging.getLogger("geocomply.optimize")

# 3 distinct vertices + closing duplicate
MIN_RING_COORDS = DEFAULT_CONFIG.rules.min_ring_vertices


class PointStrategy(Enum):
    """How a polygon is reduced to a single representative point."""

    CENTROID = "centroid"       # area-weighted centroid
    BBOX = "bbox"               # midpoint of the bounding box


# ── Polygon → Point ─────────────────────────────────────────────────────


def bbox_midpoint(ring: Ring) -> Coordinate:
    """Midpoint of the bounding box of a ring's vertices."""
    lngs = [lng for lng, _ in ring]
    lats = [lat for _, lat in ring]
    return ((min(lngs) + max(lngs)) / 2, (min(lats) + max(lats)) / 2)


def area_centroid(ring: Ring) -> Coordinate:
    """Area-weighted centroid of a ring, or its bbox midpoint when degenerate."""
    try:
        centroid = ShapelyPolygon(ring).centroid
    except (ValueError, ShapelyError) as exc:
        logger.debug("Centroid unavailable (%s), using bbox midpoint", exc)
        return bbox_midpoint(ring)
    if centroid.is_empty:
        return bbox_midpoint(ring)
    return (centroid.x, centroid.y)


def polygon_to_point(
    polygon: Polygon,
    strategy: PointStrategy = PointStrategy.CENTROID,
) -> Point:
    """Reduce a polygon to one point computed from its outer ring.

    Raises ``ValueError`` for a polygon without an outer ring.
    """
    outer = polygon.outer
    if not outer:
        raise ValueError("Cannot convert a polygon without an outer ring")
    if strategy is PointStrategy.BBOX:
        return Point(bbox_midpoint(outer))
    return Point(area_centroid(outer))


# ── Simplification ──────────────────────────────────────────────────────


def simplify_polygon(polygon: Polygon, tolerance: float) -> Polygon:
    """Douglas-Peucker simplification of the outer ring.

    ``tolerance`` is in coordinate degrees. Inner rings are left alone.
    The result is always closed and keeps at least 3 distinct vertices;
    when that cannot be guaranteed the input polygon is returned.
    """
    outer = polygon.outer
    try:
        simplified = ShapelyPolygon(outer).simplify(tolerance, preserve_topology=True)
    except (ValueError, ShapelyError) as exc:
        logger.warning("Simplification skipped: %s", exc)
        return polygon

    if simplified.is_empty or simplified.geom_type != "Polygon":
        logger.warning("Simplification produced %s, keeping original", simplified.geom_type)
        return polygon

    ring: Ring = tuple((x, y) for x, y, *_ in simplified.exterior.coords)
    if len(ring) < MIN_RING_COORDS or len(set(ring)) < MIN_RING_COORDS - 1:
        logger.warning("Simplification left %d vertices, keeping original", len(ring))
        return polygon
    return Polygon((ring, *polygon.rings[1:]))


# ── Export pass ─────────────────────────────────────────────────────────


def _is_small_plot(feature: Feature, threshold: float) -> bool:
    area = feature.area_hectares
    return area is not None and area <= threshold


def optimize_feature(
    feature: Feature,
    options: ExportOptions,
    strategy: PointStrategy = PointStrategy.CENTROID,
) -> tuple[Feature, str | None]:
    """Optimize one feature. Returns the new feature and a change note (or None)."""
    geometry = feature.geometry
    if not isinstance(geometry, Polygon) or not geometry.outer:
        return feature, None
    name = feature.name or "Unknown"

    if options.convert_small_to_points and _is_small_plot(
        feature, options.small_plot_threshold_hectares
    ):
        point = polygon_to_point(geometry, strategy)
        return (
            replace(feature, geometry=point),
            f'Converted "{name}" from polygon to point',
        )

    if options.simplify_tolerance:
        simplified = simplify_polygon(geometry, options.simplify_tolerance)
        return (
            replace(feature, geometry=simplified),
            f'Simplified polygon for "{name}"',
        )

    return feature, None


def optimize_for_export(
    collection: FeatureCollection,
    options: ExportOptions,
    strategy: PointStrategy = PointStrategy.CENTROID,
) -> tuple[FeatureCollection, list[str]]:
    """Apply small-plot conversion and simplification per feature.

    Conversion takes precedence: a converted feature is never simplified.
    """
    features: list[Feature] = []
    changes: list[str] = []
    for feature in collection:
        optimized, note = optimize_feature(feature, options, strategy)
        features.append(optimized)
        if note:
            changes.append(note)

    logger.info("Optimized %d features: %d changes", len(features), len(changes))
    return FeatureCollection(tuple(features)), changes

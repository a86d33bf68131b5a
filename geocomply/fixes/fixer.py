"""Deterministic geometry repair over a whole FeatureCollection.

Applies the registered ring repairs (rounding, then closure) to every
ring of Polygon and MultiPolygon geometries. Points, MultiPoints,
unsupported kinds and features without geometry are returned as the
very same objects. ``fix(fix(x)) == fix(x)`` for every input.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from geocomply.core.models import (
    Feature,
    FeatureCollection,
    Geometry,
    MultiPolygon,
    Polygon,
    Ring,
)
from geocomply.fixes.registry import FixRegistry, build_default_registry

logger = logging.getLogger("geocomply.fixes.fixer")


class GeometryFixer:
    """Repairs polygon rings with the operations of a ``FixRegistry``.

    Usage::

        fixer = GeometryFixer()
        fixed = fixer.fix(collection)
    """

    def __init__(self, registry: FixRegistry | None = None):
        self.registry = registry or build_default_registry()

    def fix_ring(self, ring: Ring) -> Ring:
        for op in self.registry:
            ring = op.apply(ring)
        return ring

    def fix_geometry(self, geometry: Geometry | None) -> Geometry | None:
        if isinstance(geometry, Polygon):
            return Polygon(tuple(self.fix_ring(r) for r in geometry.rings))
        if isinstance(geometry, MultiPolygon):
            return MultiPolygon(
                tuple(
                    tuple(self.fix_ring(r) for r in rings)
                    for rings in geometry.polygons
                )
            )
        return geometry

    def fix_feature(self, feature: Feature) -> Feature:
        fixed = self.fix_geometry(feature.geometry)
        if fixed == feature.geometry:
            return feature
        return replace(feature, geometry=fixed)

    def fix(self, collection: FeatureCollection) -> FeatureCollection:
        """Return a new collection with every polygon ring repaired."""
        features = tuple(self.fix_feature(f) for f in collection)
        changed = self.changed_indices(collection, FeatureCollection(features))
        logger.info("Fixed %d of %d features", len(changed), len(features))
        return FeatureCollection(features)

    @staticmethod
    def changed_indices(
        before: FeatureCollection, after: FeatureCollection
    ) -> list[int]:
        """Indices of features whose geometry differs between two collections."""
        return [
            i
            for i, (a, b) in enumerate(zip(before, after))
            if a.geometry != b.geometry
        ]


def fix(collection: FeatureCollection) -> FeatureCollection:
    """Repair with the default registry."""
    return GeometryFixer().fix(collection)

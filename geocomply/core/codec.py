"""GeoJSON FeatureCollection codec.

Decodes the wire document into the typed models of
:mod:`geocomply.core.models` and encodes them back with a stable key
order. Coordinates are taken as given: an unclosed ring stays unclosed,
so the validator can see what was actually submitted.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from numbers import Real
from typing import Any

from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from geocomply.core.exceptions import StructuralError
from geocomply.core.models import (
    Coordinate,
    Feature,
    FeatureCollection,
    FeatureProperties,
    Geometry,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
    Ring,
    SourceRecord,
    UnsupportedGeometry,
)

logger = logging.getLogger("geocomply.core.codec")

# Wire name → model field. Snake-case aliases are accepted on input.
_PROPERTY_KEYS = {
    "ProductionPlace": "place_name",
    "Area": "area_hectares",
    "ProducerCountry": "producer_country",
    "place_name": "place_name",
    "area_hectares": "area_hectares",
    "producer_country": "producer_country",
}


# ── Decoding ────────────────────────────────────────────────────────────


def _position(raw: Any, where: str) -> Coordinate:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        raise StructuralError(f"{where}: expected a [lng, lat] position, got {raw!r}")
    lng, lat = raw[0], raw[1]
    for value in (lng, lat):
        if isinstance(value, bool) or not isinstance(value, Real):
            raise StructuralError(f"{where}: non-numeric coordinate {value!r}")
    # Altitude (third element) is dropped.
    return (float(lng), float(lat))


def _positions(raw: Any, where: str) -> tuple[Coordinate, ...]:
    if not isinstance(raw, (list, tuple)):
        raise StructuralError(f"{where}: expected an array of positions")
    return tuple(_position(p, f"{where}[{i}]") for i, p in enumerate(raw))


def _rings(raw: Any, where: str) -> tuple[Ring, ...]:
    if not isinstance(raw, (list, tuple)):
        raise StructuralError(f"{where}: expected an array of rings")
    return tuple(_positions(r, f"{where}[{i}]") for i, r in enumerate(raw))


def geometry_from_dict(raw: Any, where: str = "geometry") -> Geometry | None:
    """Decode a GeoJSON geometry object. ``None`` stays ``None``."""
    if raw is None:
        return None
    if not isinstance(raw, dict) or not isinstance(raw.get("type"), str):
        raise StructuralError(f"{where}: geometry must be an object with a 'type'")

    kind = raw["type"]
    coords = raw.get("coordinates")
    if kind == "Point":
        return Point(_position(coords, where))
    if kind == "MultiPoint":
        return MultiPoint(_positions(coords, where))
    if kind == "Polygon":
        return Polygon(_rings(coords, where))
    if kind == "MultiPolygon":
        if not isinstance(coords, (list, tuple)):
            raise StructuralError(f"{where}: expected an array of polygons")
        return MultiPolygon(
            tuple(_rings(p, f"{where}[{i}]") for i, p in enumerate(coords))
        )
    return UnsupportedGeometry(kind, {k: v for k, v in raw.items() if k != "type"})


def _area(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        area = float(value)
    except (TypeError, ValueError):
        return None
    return area if math.isfinite(area) else None


def properties_from_dict(raw: Any) -> FeatureProperties:
    if not isinstance(raw, dict):
        return FeatureProperties()
    known: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in raw.items():
        field_name = _PROPERTY_KEYS.get(key)
        if field_name is None:
            extra[key] = value
        elif field_name not in known:
            known[field_name] = value

    name = known.get("place_name")
    country = known.get("producer_country")
    return FeatureProperties(
        place_name=None if name is None else str(name),
        area_hectares=_area(known.get("area_hectares")),
        producer_country=None if country is None else str(country),
        extra=extra,
    )


def parse_collection(document: dict | str | bytes) -> FeatureCollection:
    """Decode a FeatureCollection document.

    Raises
    ------
    StructuralError
        If the document is not a FeatureCollection. A malformed feature
        is decoded with ``geometry_error`` set instead.
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as exc:
            raise StructuralError(f"Invalid GeoJSON: not valid JSON ({exc})") from exc

    if not isinstance(document, dict) or document.get("type") != "FeatureCollection":
        raise StructuralError("Invalid GeoJSON: must be a FeatureCollection")
    raw_features = document.get("features")
    if not isinstance(raw_features, list):
        raise StructuralError("Invalid GeoJSON: 'features' must be an array")

    features = [feature_from_dict(raw, index) for index, raw in enumerate(raw_features)]
    logger.debug("Decoded %d features", len(features))
    return FeatureCollection(tuple(features))


def feature_from_dict(raw: Any, index: int = 0) -> Feature:
    """Decode one feature object.

    A feature that cannot be decoded does not abort the document: it comes
    back with ``geometry_error`` set, and validation reports it as
    ``INVALID_GEOMETRY`` for that index.
    """
    if not isinstance(raw, dict):
        logger.warning("features[%d]: feature must be an object", index)
        return Feature(geometry=None, geometry_error="feature must be an object")

    members = {
        k: v for k, v in raw.items() if k not in ("type", "properties", "geometry")
    }
    properties = properties_from_dict(raw.get("properties"))
    raw_geometry = raw.get("geometry")
    try:
        geometry = geometry_from_dict(raw_geometry, f"features[{index}].geometry")
    except StructuralError as exc:
        logger.warning("%s", exc)
        return Feature(
            geometry=None,
            properties=properties,
            members=members,
            geometry_error=str(exc),
            raw_geometry=raw_geometry,
        )
    return Feature(geometry=geometry, properties=properties, members=members)


# ── Encoding ────────────────────────────────────────────────────────────


def _ring_to_list(ring: Ring) -> list[list[float]]:
    return [[lng, lat] for lng, lat in ring]


def geometry_to_dict(geometry: Geometry | None) -> dict[str, Any] | None:
    if geometry is None:
        return None
    if isinstance(geometry, Point):
        coords: Any = list(geometry.coordinate)
    elif isinstance(geometry, MultiPoint):
        coords = [list(c) for c in geometry.coordinates]
    elif isinstance(geometry, Polygon):
        coords = [_ring_to_list(r) for r in geometry.rings]
    elif isinstance(geometry, MultiPolygon):
        coords = [[_ring_to_list(r) for r in rings] for rings in geometry.polygons]
    else:
        return {"type": geometry.kind, **geometry.members}
    return {"type": geometry.kind, "coordinates": coords}


def properties_to_dict(properties: FeatureProperties) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if properties.place_name is not None:
        out["ProductionPlace"] = properties.place_name
    if properties.area_hectares is not None:
        out["Area"] = properties.area_hectares
    if properties.producer_country is not None:
        out["ProducerCountry"] = properties.producer_country
    out.update(properties.extra)
    return out


def feature_to_dict(feature: Feature) -> dict[str, Any]:
    if feature.geometry_error is not None:
        geometry = feature.raw_geometry
    else:
        geometry = geometry_to_dict(feature.geometry)
    out = {
        "type": "Feature",
        "properties": properties_to_dict(feature.properties),
        "geometry": geometry,
    }
    out.update(feature.members)
    return out


def collection_to_dict(collection: FeatureCollection) -> dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [feature_to_dict(f) for f in collection],
    }


def dumps_collection(collection: FeatureCollection, indent: int | None = 2) -> str:
    """Serialise a collection as pretty-printed GeoJSON text."""
    return json.dumps(collection_to_dict(collection), indent=indent, ensure_ascii=False)


def to_shapely(geometry: Geometry) -> BaseGeometry:
    """Convert a supported geometry to its shapely equivalent."""
    if isinstance(geometry, UnsupportedGeometry):
        raise ValueError(f"Cannot convert {geometry.kind} geometry")
    return shape(geometry_to_dict(geometry))


# ── Source records ──────────────────────────────────────────────────────


def _timestamp(value: Any, where: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as exc:
        raise StructuralError(f"{where}: invalid timestamp {value!r}") from exc


def record_from_dict(raw: Any, index: int = 0) -> SourceRecord:
    """Decode one production-place record (camelCase or snake_case keys).

    ``coordinates`` holds a GeoJSON geometry object, as stored for the
    place.
    """
    where = f"records[{index}]"
    if not isinstance(raw, dict):
        raise StructuralError(f"{where}: record must be an object")

    def pick(*keys: str, default: Any = None) -> Any:
        for key in keys:
            if key in raw:
                return raw[key]
        return default

    supplier = pick("supplier", default={}) or {}
    geometry_raw = pick("geometry", "coordinates")
    area = _area(pick("area_hectares", "areaHectares"))
    if area is None:
        raise StructuralError(f"{where}: area_hectares must be a number")

    kind = pick("geometry_kind", "geometryType")
    geometry = geometry_from_dict(geometry_raw, f"{where}.geometry")
    if kind is None:
        kind = geometry.kind.upper() if geometry is not None else ""

    return SourceRecord(
        id=str(pick("id", default=f"record-{index}")),
        place_name=str(pick("place_name", "name", default="")),
        area_hectares=area,
        geometry_kind=str(kind).upper(),
        geometry=geometry,
        country=str(pick("country", default="")),
        source_organization_name=str(
            pick("source_organization_name", "supplierName", default=supplier.get("name", ""))
        ),
        supplier_id=str(pick("supplier_id", "supplierId", default=supplier.get("id", ""))),
        commodity=pick("commodity", default=supplier.get("commodity")),
        created_at=_timestamp(pick("created_at", "createdAt"), f"{where}.created_at"),
        updated_at=_timestamp(pick("updated_at", "updatedAt"), f"{where}.updated_at"),
    )


def parse_records(document: list | str | bytes) -> list[SourceRecord]:
    """Decode a JSON array of production-place records."""
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as exc:
            raise StructuralError(f"Invalid records file: not valid JSON ({exc})") from exc
    if not isinstance(document, list):
        raise StructuralError("Invalid records file: expected a JSON array")
    return [record_from_dict(raw, i) for i, raw in enumerate(document)]

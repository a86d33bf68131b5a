"""Shared test fixtures for GeoComply test suite."""

import json
from datetime import datetime, timezone

import pytest

from geocomply.core.config import DEFAULT_CONFIG
from geocomply.core.models import (
    Feature,
    FeatureCollection,
    FeatureProperties,
    Point,
    Polygon,
    SourceRecord,
)

FIXED_TIME = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)

SQUARE = (
    (-60.123456, -10.654321),
    (-60.113456, -10.654321),
    (-60.113456, -10.644321),
    (-60.123456, -10.644321),
    (-60.123456, -10.654321),
)


def make_feature(geometry, name="Plot A", area=2.0, country="BR"):
    return Feature(
        geometry=geometry,
        properties=FeatureProperties(
            place_name=name, area_hectares=area, producer_country=country
        ),
    )


def make_record(**overrides):
    base = {
        "id": "rec-1",
        "place_name": "Fazenda Boa Vista",
        "area_hectares": 2.0,
        "geometry_kind": "POLYGON",
        "geometry": Polygon((SQUARE,)),
        "country": "BR",
        "source_organization_name": "Cooperativa Sul",
        "supplier_id": "sup-1",
        "commodity": "COFFEE",
        "created_at": datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc),
    }
    base.update(overrides)
    return SourceRecord(**base)


@pytest.fixture
def config():
    return DEFAULT_CONFIG


@pytest.fixture
def clock():
    return lambda: FIXED_TIME


@pytest.fixture
def square_polygon():
    return Polygon((SQUARE,))


@pytest.fixture
def valid_point():
    return Point((-60.123456, -10.654321))


@pytest.fixture
def valid_collection(square_polygon, valid_point):
    return FeatureCollection((
        make_feature(square_polygon, name="Plot A", area=12.0),
        make_feature(valid_point, name="Plot B", area=1.5, country="CO"),
    ))


@pytest.fixture
def records():
    return [
        make_record(),
        make_record(
            id="rec-2",
            place_name="Finca El Roble",
            area_hectares=1.5,
            geometry_kind="POINT",
            geometry=Point((-75.512345, 4.812345)),
            country="CO",
            source_organization_name="Asociación Andina, Ltda",
            supplier_id="sup-2",
            commodity="COCOA",
        ),
    ]


@pytest.fixture
def geojson_file(tmp_path):
    """An unclosed, low-precision polygon and a valid point, as raw GeoJSON."""
    document = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"ProductionPlace": "Square", "Area": 3},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1]]],
                },
            },
            {
                "type": "Feature",
                "properties": {"ProductionPlace": "Well", "Area": 1},
                "geometry": {"type": "Point", "coordinates": [-60.123456, -10.654321]},
            },
        ],
    }
    path = tmp_path / "plots.geojson"
    path.write_text(json.dumps(document))
    return path


@pytest.fixture
def records_file(tmp_path):
    document = [
        {
            "id": "rec-1",
            "name": "Fazenda Boa Vista",
            "areaHectares": 2.0,
            "geometryType": "POLYGON",
            "coordinates": {
                "type": "Polygon",
                "coordinates": [[list(c) for c in SQUARE]],
            },
            "country": "BR",
            "supplier": {"id": "sup-1", "name": "Cooperativa Sul", "commodity": "COFFEE"},
            "createdAt": "2026-01-05T09:30:00Z",
        },
        {
            "id": "rec-2",
            "name": "Finca El Roble",
            "areaHectares": 10.0,
            "geometryType": "POINT",
            "coordinates": {"type": "Point", "coordinates": [-75.512345, 4.812345]},
            "country": "CO",
            "supplier": {"id": "sup-2", "name": "Asociación Andina", "commodity": "COCOA"},
            "createdAt": "2026-01-06T10:00:00Z",
        },
    ]
    path = tmp_path / "places.json"
    path.write_text(json.dumps(document))
    return path

"""Tests for the one-liner API."""

import io
import json
import zipfile

import pytest
from pydantic import ValidationError

import geocomply
from geocomply.api import load_collection, load_records, outcome_summary
from geocomply.core.exceptions import StructuralError
from geocomply.core.models import ErrorCode, Point, Polygon


class TestLoading:
    def test_geojson_read_raw(self, geojson_file):
        fc = load_collection(geojson_file)
        assert len(fc) == 2
        assert fc[0].geometry.outer[0] != fc[0].geometry.outer[-1]
        assert fc[1].geometry == Point((-60.123456, -10.654321))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_collection(tmp_path / "missing.geojson")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("a,b\n")
        with pytest.raises(ValueError, match="Unsupported format"):
            load_collection(path)

    def test_not_a_collection(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"type": "Feature"}')
        with pytest.raises(StructuralError):
            load_collection(path)

    def test_geopackage(self, tmp_path):
        gpd = pytest.importorskip("geopandas")
        shapely_geometry = pytest.importorskip("shapely.geometry")
        path = tmp_path / "plots.gpkg"
        gdf = gpd.GeoDataFrame(
            {"ProductionPlace": ["Box"], "Area": [5.0]},
            geometry=[shapely_geometry.box(0.000001, 0.000001, 1.000001, 1.000001)],
            crs="EPSG:4326",
        )
        try:
            gdf.to_file(path, driver="GPKG")
        except Exception as exc:
            pytest.skip(f"GPKG driver unavailable: {exc}")

        fc = load_collection(path)
        assert len(fc) == 1
        assert isinstance(fc[0].geometry, Polygon)
        assert fc[0].name == "Box"
        assert fc[0].area_hectares == 5.0

    def test_load_records(self, records_file):
        records = load_records(records_file)
        assert [r.id for r in records] == ["rec-1", "rec-2"]
        assert records[1].geometry_kind == "POINT"


class TestValidate:
    def test_validate(self, geojson_file):
        outcome = geocomply.validate(geojson_file)
        assert not outcome.valid
        assert outcome.codes() == [ErrorCode.POLYGON_NOT_CLOSED]
        assert "INVALID" in outcome_summary(outcome)


class TestFix:
    def test_fix_writes_closed_geojson(self, geojson_file, tmp_path):
        output = tmp_path / "fixed.geojson"
        outcome = geocomply.fix(geojson_file, output)
        assert outcome.valid
        doc = json.loads(output.read_text())
        ring = doc["features"][0]["geometry"]["coordinates"][0]
        assert ring == [[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]
        assert doc["features"][0]["properties"]["ProductionPlace"] == "Square"


class TestExport:
    def test_export_writes_archive(self, records_file, tmp_path):
        output = tmp_path / "export.zip"
        artifact = geocomply.export(records_file, output, include_audit_log=True)
        assert output.read_bytes() == artifact.archive
        with zipfile.ZipFile(io.BytesIO(artifact.archive)) as zf:
            assert "audit_log.json" in zf.namelist()
        # the 10 ha point plot is a large plot
        assert artifact.validation.codes() == [ErrorCode.LARGE_PLOT_NEEDS_POLYGON]

    def test_bad_tolerance(self, records_file, tmp_path):
        with pytest.raises(ValidationError):
            geocomply.export(records_file, tmp_path / "x.zip", simplify_tolerance=0.5)

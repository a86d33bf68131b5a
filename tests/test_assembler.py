"""Integration tests for the export assembler."""

import csv
import io
import json
import zipfile

import pytest

from conftest import make_feature, make_record
from geocomply.core.exceptions import PipelineFailure
from geocomply.core.models import ErrorCode, ExportOptions, FeatureCollection, Point, Polygon
from geocomply.archive.assembler import ExportAssembler, summarize
from geocomply.optimize.optimizer import PointStrategy

ARCHIVE_NAMES = ["geolocation.geojson", "summary.csv", "validation_report.txt"]


@pytest.fixture
def assembler(clock):
    return ExportAssembler(clock=clock)


def _names(artifact):
    with zipfile.ZipFile(io.BytesIO(artifact.archive)) as zf:
        return zf.namelist()


class TestMapping:
    def test_properties(self, assembler, records):
        fc = assembler.map_records(records, ExportOptions())
        assert fc[0].name == "Fazenda Boa Vista"
        assert fc[0].area_hectares == 2.0
        assert fc[0].properties.producer_country == "BR"
        assert fc[0].geometry == records[0].geometry

    def test_small_polygon_substituted_by_bbox_midpoint(self, assembler, records):
        fc = assembler.map_records(records, ExportOptions(convert_small_to_points=True))
        lng, lat = fc[0].geometry.coordinate
        assert lng == pytest.approx(-60.118456)
        assert lat == pytest.approx(-10.649321)

    def test_large_polygon_not_substituted(self, assembler):
        record = make_record(area_hectares=20)
        fc = assembler.map_records([record], ExportOptions(convert_small_to_points=True))
        assert isinstance(fc[0].geometry, Polygon)


class TestAssemble:
    def test_default_archive(self, assembler, records):
        artifact = assembler.assemble(records, ExportOptions())
        assert _names(artifact) == ARCHIVE_NAMES
        assert artifact.validation.valid
        assert artifact.changes == ()
        assert artifact.byte_size == len(artifact.archive)
        assert artifact.summary.byte_size == artifact.byte_size

    def test_audit_log_included(self, assembler, records):
        artifact = assembler.assemble(records, ExportOptions(include_provenance_log=True))
        assert _names(artifact) == ARCHIVE_NAMES + ["audit_log.json"]
        log = json.loads(artifact.files["audit_log.json"])
        assert log["totalPlaces"] == 2

    def test_deterministic_with_fixed_clock(self, assembler, records):
        a = assembler.assemble(records, ExportOptions())
        b = assembler.assemble(records, ExportOptions())
        assert a.archive == b.archive

    def test_summary_metrics(self, assembler, records):
        artifact = assembler.assemble(records, ExportOptions())
        assert artifact.summary.total_area_hectares == pytest.approx(3.5)
        assert artifact.summary.feature_count == 2
        assert artifact.summary.by_country == {"BR": 1, "CO": 1}

    def test_conversion_reported(self, assembler, records):
        artifact = assembler.assemble(records, ExportOptions(convert_small_to_points=True))
        geojson = json.loads(artifact.files["geolocation.geojson"])
        assert geojson["features"][0]["geometry"]["type"] == "Point"
        rows = list(csv.reader(io.StringIO(artifact.files["summary.csv"].decode())))
        assert rows[1][4] == "Point"

    def test_simplify_reported(self, assembler):
        record = make_record(place_name="Big", area_hectares=50)
        artifact = assembler.assemble([record], ExportOptions(simplify_tolerance=0.0001))
        assert artifact.changes == ('Simplified polygon for "Big"',)

    def test_invalid_collection_still_exported(self, assembler):
        record = make_record(
            geometry_kind="POINT", geometry=Point((-200.123456, 4.123456)), area_hectares=10
        )
        artifact = assembler.assemble([record], ExportOptions())
        assert not artifact.validation.valid
        assert set(artifact.validation.codes()) == {
            ErrorCode.COORDINATE_OUT_OF_BOUNDS,
            ErrorCode.LARGE_PLOT_NEEDS_POLYGON,
        }
        report = artifact.files["validation_report.txt"].decode()
        assert "Status: INVALID" in report
        assert "Fazenda Boa Vista: Longitude -200.123456" in report

    def test_empty_export(self, assembler):
        artifact = assembler.assemble([], ExportOptions())
        assert artifact.summary.feature_count == 0
        assert artifact.validation.valid

    def test_failure_is_wrapped(self, clock, records):
        def broken_clock():
            raise RuntimeError("clock stopped")

        with pytest.raises(PipelineFailure) as excinfo:
            ExportAssembler(clock=broken_clock).assemble(records, ExportOptions())
        assert excinfo.value.stage == "render"
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_shortcut_needs_polygon_kind(self, assembler):
        ell = ((0, 0), (4, 0), (4, 1), (1, 1), (1, 4), (0, 4), (0, 0))
        record = make_record(geometry=Polygon((ell,)), geometry_kind="POINT", area_hectares=1)
        artifact = assembler.assemble([record], ExportOptions(convert_small_to_points=True))
        lng, lat = artifact.collection[0].geometry.coordinate
        assert lng == pytest.approx(9.5 / 7)
        assert lat == pytest.approx(9.5 / 7)
        assert artifact.changes == ('Converted "Fazenda Boa Vista" from polygon to point',)

    def test_bbox_strategy(self, clock):
        ell = ((0, 0), (4, 0), (4, 1), (1, 1), (1, 4), (0, 4), (0, 0))
        record = make_record(geometry=Polygon((ell,)), geometry_kind="POINT", area_hectares=1)
        assembler = ExportAssembler(clock=clock, point_strategy=PointStrategy.BBOX)
        artifact = assembler.assemble([record], ExportOptions(convert_small_to_points=True))
        assert artifact.collection[0].geometry == Point((2.0, 2.0))


class TestSummarize:
    def test_unknown_country(self):
        fc = FeatureCollection((make_feature(Point((1.0, 2.0)), area=1.5, country=None),))
        summary = summarize(fc)
        assert summary.by_country == {"Unknown": 1}
        assert summary.total_area_hectares == 1.5

"""Tests for the export service and its collaborators."""

import io
import re
import zipfile

import pytest

from conftest import make_record
from geocomply.core.exceptions import PipelineFailure, StorageError
from geocomply.core.models import ExportOptions, Point
from geocomply.core.schemas import ExportRequest
from geocomply.archive.assembler import ExportAssembler
from geocomply.archive.service import ExportService, filter_records
from geocomply.storage.history import ExportHistory


class MemoryStore:
    """Records uploads instead of writing them anywhere."""

    def __init__(self, fail=False):
        self.uploads = {}
        self.fail = fail

    def upload(self, key, data, content_type):
        if self.fail:
            raise StorageError("bucket unavailable")
        self.uploads[key] = (data, content_type)
        return f"https://files.example.com/{key}"


@pytest.fixture
def history(tmp_path):
    h = ExportHistory(tmp_path / "history.db")
    yield h
    h.close()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store, history, clock):
    return ExportService(store, history, assembler=ExportAssembler(clock=clock))


class TestFilterRecords:
    def test_by_supplier(self, records):
        selected = filter_records(records, ExportOptions(supplier_ids=("sup-2",)))
        assert [r.id for r in selected] == ["rec-2"]

    def test_by_commodity(self, records):
        selected = filter_records(records, ExportOptions(commodity="COFFEE"))
        assert [r.id for r in selected] == ["rec-1"]

    def test_no_filter(self, records):
        assert filter_records(records, ExportOptions()) == list(records)


class TestGenerateExport:
    def test_upload_and_record(self, service, store, history, records):
        result = service.generate_export("acme", records, ExportRequest())
        assert result.success
        [key] = store.uploads
        assert re.fullmatch(r"exports/acme/\d{4}-\d{2}-\d{2}/eudr-export-[0-9a-f]{8}\.zip", key)
        data, content_type = store.uploads[key]
        assert content_type == "application/zip"
        assert result.file_size == len(data)
        assert result.download_url == f"https://files.example.com/{key}"
        assert result.valid_features == 2
        assert result.invalid_features == 0

        [row] = history.query("acme")
        assert row["file_url"] == result.download_url
        assert row["file_size_bytes"] == result.file_size
        assert row["validation_summary"]["validFeatures"] == 2

    def test_filters_applied(self, service, store, records):
        result = service.generate_export(
            "acme", records, ExportRequest(commodity="COCOA", include_audit_log=True)
        )
        [(data, _)] = store.uploads.values()
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert "audit_log.json" in zf.namelist()
        assert result.summary.feature_count == 1
        assert result.summary.by_country == {"CO": 1}

    def test_invalid_features_counted(self, service, history):
        records = [
            make_record(id="a", geometry_kind="POINT", geometry=Point((-200.123456, 1.123456))),
            make_record(id="b"),
        ]
        result = service.generate_export("acme", records, ExportRequest())
        assert result.valid_features == 1
        assert result.invalid_features == 1
        assert result.errors[0]["name"] == "Fazenda Boa Vista"
        assert "Longitude" in result.errors[0]["error"]
        payload = result.to_dict()
        assert payload["validationReport"]["invalidFeatures"] == 1

    def test_optimizations_recorded(self, service, history):
        records = [make_record(place_name="Estate", area_hectares=50)]
        service.generate_export("acme", records, ExportRequest(simplify_tolerance=0.0001))
        [row] = history.query("acme")
        assert row["validation_summary"]["optimizations"] == [
            'Simplified polygon for "Estate"'
        ]

    def test_upload_failure(self, history, clock, records):
        service = ExportService(MemoryStore(fail=True), history)
        with pytest.raises(StorageError):
            service.generate_export("acme", records, ExportRequest())
        assert history.count("acme") == 0

    def test_pipeline_failure_skips_upload(self, store, history, records):
        def broken_clock():
            raise RuntimeError("no time")

        service = ExportService(store, history, assembler=ExportAssembler(clock=broken_clock))
        with pytest.raises(PipelineFailure):
            service.generate_export("acme", records, ExportRequest())
        assert store.uploads == {}

    def test_publish_prebuilt_artifact(self, service, store, history, records, clock):
        options = ExportOptions(commodity="COFFEE", supplier_ids=("sup-1",))
        artifact = ExportAssembler(clock=clock).assemble(records[:1], options)
        result = service.publish("acme", artifact, options)
        [(data, _)] = store.uploads.values()
        assert data == artifact.archive
        assert result.file_size == artifact.byte_size
        [row] = history.query("acme")
        assert row["commodity"] == "COFFEE"
        assert row["supplier_ids"] == ["sup-1"]


class TestListExports:
    def test_pagination(self, service, records):
        for _ in range(3):
            service.generate_export("acme", records, ExportRequest())
        service.generate_export("other", records, ExportRequest())

        page = service.list_exports("acme", page=2, limit=2)
        assert len(page["data"]) == 1
        assert page["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}

    def test_empty(self, service):
        page = service.list_exports("nobody")
        assert page["data"] == []
        assert page["pagination"]["totalPages"] == 0

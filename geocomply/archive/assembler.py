"""Export assembly — turn production places into a compliance archive.

Pipeline, in order:
  map records → optimize → validate → render → zip → metrics

An export is all-or-nothing: any unexpected failure after mapping is
raised as :class:`PipelineFailure` and no artifact is returned. A
collection that merely fails validation still produces an artifact; its
report records which features broke which rule.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from geocomply.core.config import DEFAULT_CONFIG, GeoComplyConfig
from geocomply.core.exceptions import PipelineFailure
from geocomply.core.models import (
    ExportArtifact,
    ExportOptions,
    ExportSummary,
    Feature,
    FeatureCollection,
    FeatureProperties,
    Polygon,
    SourceRecord,
)
from geocomply.archive.render import (
    build_archive,
    render_geojson,
    render_provenance_log,
    render_summary_csv,
    render_validation_report,
)
from geocomply.optimize.optimizer import PointStrategy, optimize_for_export, polygon_to_point
from geocomply.validation.validator import GeometryValidator

logger = logging.getLogger("geocomply.archive")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def summarize(collection: FeatureCollection) -> ExportSummary:
    """Declared-area and per-country metrics of a collection."""
    by_country: dict[str, int] = {}
    total = 0.0
    for feature in collection:
        total += feature.area_hectares or 0
        country = feature.properties.producer_country or "Unknown"
        by_country[country] = by_country.get(country, 0) + 1
    return ExportSummary(
        total_area_hectares=total,
        feature_count=len(collection),
        by_country=by_country,
    )


class ExportAssembler:
    """Builds an :class:`ExportArtifact` from already-filtered source records.

    Usage::

        assembler = ExportAssembler()
        artifact = assembler.assemble(records, ExportOptions(include_provenance_log=True))
        Path("export.zip").write_bytes(artifact.archive)
    """

    def __init__(
        self,
        config: GeoComplyConfig = DEFAULT_CONFIG,
        validator: Optional[GeometryValidator] = None,
        clock: Clock = _utcnow,
        point_strategy: PointStrategy = PointStrategy.CENTROID,
    ):
        self.config = config
        self.validator = validator or GeometryValidator(config.rules)
        self.clock = clock
        self.point_strategy = point_strategy

    # ── Step 1: mapping ─────────────────────────────────────────────

    def map_record(self, record: SourceRecord, options: ExportOptions) -> Feature:
        """Map one record onto the fixed property schema.

        With ``convert_small_to_points`` a small polygon plot is replaced by
        its bounding-box midpoint here, before optimization runs.
        """
        geometry = record.geometry
        if (
            options.convert_small_to_points
            and record.geometry_kind.upper() == "POLYGON"
            and isinstance(geometry, Polygon)
            and geometry.outer
            and record.area_hectares <= options.small_plot_threshold_hectares
        ):
            geometry = polygon_to_point(geometry, PointStrategy.BBOX)
            logger.debug("Mapped small plot %r to a point", record.place_name)

        return Feature(
            geometry=geometry,
            properties=FeatureProperties(
                place_name=record.place_name,
                area_hectares=record.area_hectares,
                producer_country=record.country,
            ),
        )

    def map_records(
        self, records: Sequence[SourceRecord], options: ExportOptions
    ) -> FeatureCollection:
        return FeatureCollection(tuple(self.map_record(r, options) for r in records))

    # ── Full pipeline ───────────────────────────────────────────────

    def assemble(
        self,
        records: Sequence[SourceRecord],
        options: ExportOptions,
    ) -> ExportArtifact:
        """Run every export step and return the packaged artifact.

        Raises
        ------
        PipelineFailure
            If any step fails unexpectedly.
        """
        stage = "map"
        try:
            mapped = self.map_records(records, options)

            stage = "optimize"
            if options.convert_small_to_points or options.simplify_tolerance:
                optimized, changes = optimize_for_export(
                    mapped, options, self.point_strategy
                )
            else:
                optimized, changes = mapped, []

            stage = "validate"
            validation = self.validator.validate(optimized)

            stage = "render"
            generated_at = self.clock()
            archive_cfg = self.config.archive
            files = {
                archive_cfg.geojson_name: render_geojson(optimized),
                archive_cfg.summary_name: render_summary_csv(records, optimized).encode("utf-8"),
                archive_cfg.report_name: render_validation_report(
                    validation, len(optimized), generated_at
                ).encode("utf-8"),
            }
            if options.include_provenance_log:
                files[archive_cfg.audit_log_name] = render_provenance_log(
                    records, generated_at
                ).encode("utf-8")

            stage = "package"
            archive = build_archive(files, generated_at, archive_cfg.compress_level)
        except Exception as exc:
            logger.exception("Export failed during %s", stage)
            raise PipelineFailure(str(exc), stage=stage) from exc

        metrics = summarize(mapped)
        summary = ExportSummary(
            total_area_hectares=metrics.total_area_hectares,
            feature_count=metrics.feature_count,
            by_country=metrics.by_country,
            byte_size=len(archive),
        )
        logger.info(
            "Assembled export: %d features, %d bytes, status=%s, %d optimizations",
            summary.feature_count,
            summary.byte_size,
            "VALID" if validation.valid else "INVALID",
            len(changes),
        )
        return ExportArtifact(
            files=files,
            archive=archive,
            validation=validation,
            changes=tuple(changes),
            summary=summary,
            collection=optimized,
        )

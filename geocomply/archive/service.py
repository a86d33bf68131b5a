"""Export service — filter, assemble, upload, record.

Glues the assembler to its collaborators: an :class:`ArtifactStore` for
the archive and an :class:`ExportHistory` for the export record.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from geocomply.core.config import DEFAULT_CONFIG, GeoComplyConfig
from geocomply.core.models import (
    ExportArtifact,
    ExportOptions,
    ExportResult,
    SourceRecord,
)
from geocomply.core.schemas import ExportRequest
from geocomply.archive.assembler import ExportAssembler
from geocomply.storage.artifacts import ArtifactStore, export_key
from geocomply.storage.history import ExportHistory

logger = logging.getLogger("geocomply.archive.service")


def filter_records(
    records: Sequence[SourceRecord], options: ExportOptions
) -> list[SourceRecord]:
    """Keep records matching the supplier and commodity filters."""
    selected = []
    for record in records:
        if options.supplier_ids and record.supplier_id not in options.supplier_ids:
            continue
        if options.commodity and record.commodity != options.commodity:
            continue
        selected.append(record)
    return selected


def validation_summary(artifact: ExportArtifact) -> dict[str, Any]:
    """Per-export validation counts stored alongside the export record."""
    validation = artifact.validation
    invalid = len(validation.invalid_feature_indices)
    return {
        "validFeatures": validation.feature_count - invalid,
        "invalidFeatures": invalid,
        "errors": [
            {"name": e.feature_name or "Unknown", "error": e.message}
            for e in validation.errors
        ],
        "optimizations": list(artifact.changes),
    }


class ExportService:
    """Generates exports for a client and keeps their history.

    Usage::

        service = ExportService(LocalArtifactStore(root), ExportHistory(db))
        result = service.generate_export("client-1", records, ExportRequest())
        print(result.download_url)
    """

    def __init__(
        self,
        store: ArtifactStore,
        history: ExportHistory,
        config: GeoComplyConfig = DEFAULT_CONFIG,
        assembler: Optional[ExportAssembler] = None,
    ):
        self.store = store
        self.history = history
        self.config = config
        self.assembler = assembler or ExportAssembler(config)

    def generate_export(
        self,
        client_id: str,
        records: Sequence[SourceRecord],
        request: ExportRequest,
    ) -> ExportResult:
        """Build, upload and record one export.

        Raises ``PipelineFailure`` when assembly fails and ``StorageError``
        when the archive cannot be stored or recorded.
        """
        options = request.to_options()
        selected = filter_records(records, options)
        logger.info(
            "Export for client %s: %d of %d records selected",
            client_id,
            len(selected),
            len(records),
        )

        artifact = self.assembler.assemble(selected, options)
        return self.publish(client_id, artifact, options)

    def publish(
        self,
        client_id: str,
        artifact: ExportArtifact,
        options: ExportOptions,
    ) -> ExportResult:
        """Upload an already assembled archive and record it in the history."""
        filename = f"{self.config.archive.filename_prefix}-{uuid.uuid4().hex[:8]}.zip"
        key = export_key(client_id, filename, datetime.now(timezone.utc))
        url = self.store.upload(key, artifact.archive, "application/zip")

        summary = validation_summary(artifact)
        self.history.record(
            client_id=client_id,
            file_url=url,
            file_size_bytes=artifact.byte_size,
            commodity=options.commodity,
            supplier_ids=list(options.supplier_ids),
            validation_summary=summary,
        )

        return ExportResult(
            success=True,
            download_url=url,
            file_size=artifact.byte_size,
            valid_features=summary["validFeatures"],
            invalid_features=summary["invalidFeatures"],
            errors=tuple(summary["errors"]),
            summary=artifact.summary,
        )

    def list_exports(self, client_id: str, page: int = 1, limit: int = 10) -> dict[str, Any]:
        """Paginated export history of one client."""
        page = max(page, 1)
        rows = self.history.query(client_id, limit=limit, offset=(page - 1) * limit)
        total = self.history.count(client_id)
        return {
            "data": rows,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": -(-total // limit) if limit else 0,
            },
        }

"""GeoComply custom exceptions."""

from __future__ import annotations


class GeoComplyError(Exception):
    """Base exception for all GeoComply errors."""


class StructuralError(GeoComplyError):
    """Raised when a document is not a processable FeatureCollection."""


class DataLoadError(GeoComplyError):
    """Raised when input data cannot be loaded or is invalid."""


class PipelineFailure(GeoComplyError):
    """Raised when an export fails as a whole.

    No partial artifact is produced; the original exception is chained
    as ``__cause__``.
    """

    def __init__(self, message: str, stage: str = ""):
        self.stage = stage
        super().__init__(f"{stage}: {message}" if stage else message)


class StorageError(GeoComplyError):
    """Raised when uploading an archive or recording an export fails."""

"""Archive storage — where finished export archives are handed off.

The object store is an external collaborator. ``ArtifactStore`` is the
contract the export service relies on; ``LocalArtifactStore`` writes to
a directory and is what the CLI uses.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from geocomply.core.exceptions import StorageError

logger = logging.getLogger("geocomply.storage.artifacts")


def export_key(client_id: str, filename: str, when: datetime | None = None) -> str:
    """Object key for an export: ``exports/<client>/<YYYY-MM-DD>/<filename>``."""
    when = when or datetime.now(timezone.utc)
    return f"exports/{client_id}/{when.date().isoformat()}/{filename}"


class ArtifactStore(Protocol):
    def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return its public URL."""
        ...


class LocalArtifactStore:
    """Stores archives below a root directory.

    Usage::

        store = LocalArtifactStore(Path("exports"), "https://cdn.example.com")
        url = store.upload("exports/c1/2026-01-01/x.zip", data, "application/zip")
    """

    def __init__(self, root: Path, public_base_url: str = ""):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Cannot write {key}: {exc}") from exc

        logger.info("Stored %s (%d bytes, %s)", key, len(data), content_type)
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return path.as_uri()

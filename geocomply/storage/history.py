"""SQLite export history — schema and operations.

Keeps one row per generated export so a client can list and re-download
past submissions.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from geocomply.core.exceptions import StorageError

logger = logging.getLogger("geocomply.storage.history")

SCHEMA = """\
CREATE TABLE IF NOT EXISTS exports (
    id                  TEXT    PRIMARY KEY,
    created_at          TEXT    NOT NULL,
    client_id           TEXT    NOT NULL,
    file_url            TEXT    NOT NULL,
    file_size_bytes     INTEGER NOT NULL,
    commodity           TEXT,
    supplier_ids        TEXT    NOT NULL DEFAULT '[]',
    validation_summary  TEXT    NOT NULL DEFAULT '{}'
);

CREATE INDEX IF NOT EXISTS idx_client ON exports(client_id);
"""


class ExportHistory:
    """SQLite-backed record of generated exports.

    Usage::

        history = ExportHistory(Path("geocomply_exports.db"))
        history.record(client_id="c1", file_url=url, file_size_bytes=123)
        rows = history.query(client_id="c1")
        history.close()
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA)
            logger.info("Export history opened: %s", self.db_path)
        return self._conn

    def record(
        self,
        client_id: str,
        file_url: str,
        file_size_bytes: int,
        commodity: Optional[str] = None,
        supplier_ids: Optional[list[str]] = None,
        validation_summary: Optional[dict[str, Any]] = None,
    ) -> str:
        """Insert one export record. Returns its ID."""
        export_id = str(uuid.uuid4())
        try:
            self.conn.execute(
                "INSERT INTO exports (id, created_at, client_id, file_url, "
                "file_size_bytes, commodity, supplier_ids, validation_summary) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    export_id,
                    datetime.now(timezone.utc).isoformat(),
                    client_id,
                    file_url,
                    file_size_bytes,
                    commodity,
                    json.dumps(supplier_ids or []),
                    json.dumps(validation_summary or {}),
                ),
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot record export: {exc}") from exc
        return export_id

    def query(
        self,
        client_id: str,
        limit: int = 10,
        offset: int = 0,
    ) -> list[dict]:
        """Exports of one client, newest first."""
        rows = self.conn.execute(
            "SELECT * FROM exports WHERE client_id = ? "
            "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            (client_id, limit, offset),
        ).fetchall()
        result = []
        for r in rows:
            row = dict(r)
            row["supplier_ids"] = json.loads(row["supplier_ids"])
            row["validation_summary"] = json.loads(row["validation_summary"])
            result.append(row)
        return result

    def count(self, client_id: str) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) FROM exports WHERE client_id = ?",
            (client_id,),
        ).fetchone()
        return row[0]

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

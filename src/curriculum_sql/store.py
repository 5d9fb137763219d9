from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from curriculum_sql.models import HistoryRecord, ScriptArtifact, SourceMeta

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS history (
    record_id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    subject TEXT NOT NULL,
    course TEXT NOT NULL,
    region TEXT NOT NULL,
    file_name TEXT NOT NULL,
    sql TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_history_owner ON history(owner_id, created_at);
"""


class Store:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)

    def persist(
        self,
        artifact: ScriptArtifact,
        owner_id: str,
        meta: SourceMeta | None = None,
    ) -> HistoryRecord:
        """Save a finalized artifact for ``owner_id`` and return the stored record."""
        meta = meta or SourceMeta()
        record = HistoryRecord(
            record_id=uuid.uuid4().hex[:12],
            owner_id=owner_id,
            created_at=datetime.now(timezone.utc),
            subject=meta.subject,
            course=meta.course,
            region=meta.region,
            file_name=artifact.file_name,
            sql=artifact.text,
        )
        self.save_record(record)
        logger.info("Persisted script %s for owner %s", record.record_id, owner_id)
        return record

    def save_record(self, record: HistoryRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO history(
                    record_id, owner_id, created_at, subject, course, region, file_name, sql
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.record_id,
                    record.owner_id,
                    record.created_at.isoformat(),
                    record.subject,
                    record.course,
                    record.region,
                    record.file_name,
                    record.sql,
                ),
            )

    def list_history(self, owner_id: str, limit: int = 100) -> list[HistoryRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM history
                WHERE owner_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (owner_id, limit),
            ).fetchall()
            return [HistoryRecord.model_validate(dict(r)) for r in rows]

    def get_record(self, record_id: str) -> HistoryRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM history WHERE record_id = ?", (record_id,)).fetchone()
            return HistoryRecord.model_validate(dict(row)) if row else None

    def delete_record(self, record_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM history WHERE record_id = ?", (record_id,))
            return cursor.rowcount > 0

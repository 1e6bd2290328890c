"""SQLite key-value store holding the evaluation history (newest first)."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from job_worth.models.form import FormInput
from job_worth.models.history import HistoryRecord
from job_worth.models.report import AnalysisReport

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".job-worth" / "history.db"
HISTORY_KEY = "job_calculator_history"

_records_adapter = TypeAdapter(list[HistoryRecord])


class HistoryStore:
    """Whole history is one JSON array under a single key, rewritten on every change.

    Storage failures never propagate: reads degrade to an empty history and
    writes are dropped after logging. Concurrent writers (two UI sessions on
    the same file) are last-writer-wins.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH, key: str = HISTORY_KEY):
        self.db_path = Path(db_path)
        self.key = key
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_db()
        except (sqlite3.Error, OSError):
            logger.error("Could not initialise history store at %s", self.db_path, exc_info=True)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            """)

    def _read_raw(self) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (self.key,)
            ).fetchone()
        return row[0] if row else None

    def _write(self, records: list[HistoryRecord]) -> None:
        payload = json.dumps(
            [r.model_dump(mode="json", by_alias=True) for r in records],
            ensure_ascii=False,
        )
        try:
            with self._connect() as conn:
                conn.execute(
                    """INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                       VALUES (?, ?, ?)""",
                    (self.key, payload, time.time()),
                )
        except (sqlite3.Error, OSError):
            logger.error("Failed to persist history (%d records)", len(records), exc_info=True)

    def _load(self) -> list[HistoryRecord]:
        """Read the stored array. Corrupt data reads as empty; storage errors propagate."""
        raw = self._read_raw()
        if raw is None:
            return []
        try:
            return _records_adapter.validate_json(raw)
        except ValidationError:
            logger.error("Stored history is corrupt; treating it as empty", exc_info=True)
            return []

    def list(self) -> list[HistoryRecord]:
        """All records, newest first. Empty if absent or unreadable."""
        try:
            return self._load()
        except (sqlite3.Error, OSError):
            logger.error("Failed to read history", exc_info=True)
            return []

    def get(self, record_id: str) -> HistoryRecord | None:
        for record in self.list():
            if record.id == record_id:
                return record
        return None

    def append(self, form: FormInput, report: AnalysisReport) -> HistoryRecord:
        """Prepend a new record and persist. The record is returned even if the write fails.

        If the existing history cannot be read, nothing is written, so a
        transient read error never overwrites stored records.
        """
        record = HistoryRecord(form_data=form, result=report)
        try:
            existing = self._load()
        except (sqlite3.Error, OSError):
            logger.error("Failed to read history; record %s not saved", record.id, exc_info=True)
            return record
        self._write([record, *existing])
        logger.info("Saved history record %s", record.id)
        return record

    def remove(self, record_id: str) -> list[HistoryRecord]:
        """Drop the record with this id and return the remaining records."""
        try:
            existing = self._load()
        except (sqlite3.Error, OSError):
            logger.error("Failed to read history; record %s not removed", record_id, exc_info=True)
            return []
        updated = [r for r in existing if r.id != record_id]
        self._write(updated)
        logger.info("Removed history record %s", record_id)
        return updated

    def clear(self) -> None:
        """Delete all persisted history."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (self.key,))
        except (sqlite3.Error, OSError):
            logger.error("Failed to clear history", exc_info=True)

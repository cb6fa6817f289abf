"""Audit log: every blocked or overridden guard decision is kept here.

Only guard reports are recorded (numbers, keyword stems, reasons), never
the report text itself.

Usage:
    audit = SqliteAuditLog("~/.report-guard/audit.db")
    pipeline = ReportPipeline(..., audit=audit)
    ...
    audit.find(request_id)   # -> [AuditRecord(decision="override", ...)]
"""

from __future__ import annotations
import json
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from .types import GuardReport

BLOCKED = "blocked"
OVERRIDE = "override"


@dataclass(frozen=True, slots=True)
class AuditRecord:
    request_id: str
    decision: str          # "blocked" | "override"
    report: GuardReport
    created_at: float


class AuditLog:
    """In-memory audit log, scoped to the process."""

    __slots__ = ("_records", "_lock")

    def __init__(self) -> None:
        self._records: list[AuditRecord] = []
        self._lock = threading.Lock()

    def record(self, request_id: str, decision: str, report: GuardReport) -> AuditRecord:
        entry = AuditRecord(request_id, decision, report, time.time())
        with self._lock:
            self._records.append(entry)
        return entry

    def find(self, request_id: str) -> list[AuditRecord]:
        with self._lock:
            return [r for r in self._records if r.request_id == request_id]

    def entries(self) -> list[AuditRecord]:
        with self._lock:
            return list(self._records)

    @property
    def size(self) -> int:
        return len(self._records)

    def close(self) -> None:
        pass


_SCHEMA = """
CREATE TABLE IF NOT EXISTS guard_decisions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    request_id TEXT NOT NULL,
    decision TEXT NOT NULL,
    report TEXT NOT NULL,
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_guard_decisions_request
    ON guard_decisions(request_id);
"""


class SqliteAuditLog:
    """Persistent audit log, same API as AuditLog."""

    __slots__ = ("_db", "_lock")

    def __init__(self, db_path: str | Path = "audit.db") -> None:
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._db.executescript(_SCHEMA)
        self._lock = threading.Lock()

    def record(self, request_id: str, decision: str, report: GuardReport) -> AuditRecord:
        entry = AuditRecord(request_id, decision, report, time.time())
        with self._lock:
            self._db.execute(
                "INSERT INTO guard_decisions (request_id, decision, report, created_at) VALUES (?, ?, ?, ?)",
                (request_id, decision, json.dumps(report.to_dict(), ensure_ascii=False), entry.created_at),
            )
            self._db.commit()
        return entry

    def find(self, request_id: str) -> list[AuditRecord]:
        with self._lock:
            rows = self._db.execute(
                "SELECT request_id, decision, report, created_at FROM guard_decisions "
                "WHERE request_id = ? ORDER BY id",
                (request_id,),
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def entries(self) -> list[AuditRecord]:
        with self._lock:
            rows = self._db.execute(
                "SELECT request_id, decision, report, created_at FROM guard_decisions ORDER BY id"
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    @property
    def size(self) -> int:
        with self._lock:
            return self._db.execute("SELECT COUNT(*) FROM guard_decisions").fetchone()[0]

    def close(self) -> None:
        self._db.close()


def _row_to_record(row: tuple) -> AuditRecord:
    request_id, decision, report, created_at = row
    return AuditRecord(request_id, decision, GuardReport.from_dict(json.loads(report)), created_at)

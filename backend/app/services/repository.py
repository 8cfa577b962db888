from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Generator, Iterable
from uuid import UUID

from app.schemas.jobs import LookupResult
from app.services.models import JobRecord


class JobRepository:
    """Simple SQLite-backed persistence layer for lookup jobs."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._ensure_schema()

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS jobs (
                    job_id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    input_path TEXT NOT NULL,
                    output_path TEXT NOT NULL,
                    filename TEXT,
                    total INTEGER NOT NULL DEFAULT 0,
                    processed INTEGER NOT NULL DEFAULT 0,
                    found INTEGER NOT NULL DEFAULT 0,
                    results_json TEXT NOT NULL,
                    errors_json TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def upsert(self, record: JobRecord) -> None:
        payload = (
            str(record.job_id),
            record.status,
            record.created_at.isoformat(),
            record.updated_at.isoformat(),
            str(record.input_path),
            str(record.output_path),
            record.filename,
            record.total,
            record.processed,
            record.found,
            json.dumps(
                [result.model_dump() for result in record.results],
                ensure_ascii=False,
            ),
            json.dumps(record.errors, ensure_ascii=False),
        )

        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO jobs (
                    job_id, status, created_at, updated_at, input_path,
                    output_path, filename, total, processed, found,
                    results_json, errors_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(job_id) DO UPDATE SET
                    status=excluded.status,
                    created_at=excluded.created_at,
                    updated_at=excluded.updated_at,
                    input_path=excluded.input_path,
                    output_path=excluded.output_path,
                    filename=excluded.filename,
                    total=excluded.total,
                    processed=excluded.processed,
                    found=excluded.found,
                    results_json=excluded.results_json,
                    errors_json=excluded.errors_json
                """,
                payload,
            )
            conn.commit()

    def get(self, job_id: UUID) -> JobRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM jobs WHERE job_id = ?", (str(job_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    def list(self) -> Iterable[JobRecord]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM jobs ORDER BY created_at DESC"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> JobRecord:
        results_payload = (
            json.loads(row["results_json"]) if row["results_json"] else []
        )

        return JobRecord(
            job_id=UUID(row["job_id"]),
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            input_path=Path(row["input_path"]),
            output_path=Path(row["output_path"]),
            filename=row["filename"],
            total=row["total"],
            processed=row["processed"],
            found=row["found"],
            results=[LookupResult(**item) for item in results_payload],
            errors=json.loads(row["errors_json"]) if row["errors_json"] else [],
        )

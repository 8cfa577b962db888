from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict
from uuid import UUID, uuid4

from fastapi import UploadFile

from app.core.config import Settings
from app.core.logging import get_logger
from app.schemas.jobs import JobStatusResponse, LookupResult
from app.services.lookup_service import (
    FetchCallable,
    LookupOutcome,
    LookupService,
    SleepCallable,
    columns_from_settings,
    output_fieldnames,
)
from app.services.models import JobRecord
from app.services.repository import JobRepository
from app.services.search import SearchClient
from app.services.storage import StorageService
from app.services.tabular import read_header, read_records, write_records


_logger = get_logger(__name__)


def _to_result(outcome: LookupOutcome) -> LookupResult:
    return LookupResult(
        index=outcome.index,
        query=outcome.query,
        raw_text=outcome.raw_text,
        street=outcome.parsed.street,
        postal_code=outcome.parsed.postal_code,
        city=outcome.parsed.city,
        status=outcome.status,
    )


class JobService:
    """Runs address lookups over uploaded CSV files."""

    def __init__(
        self,
        storage: StorageService,
        repository: JobRepository,
        settings: Settings,
        *,
        run_in_background: bool = True,
        fetcher: FetchCallable | None = None,
        sleeper: SleepCallable = asyncio.sleep,
    ) -> None:
        self._storage = storage
        self._repository = repository
        self._settings = settings
        self._jobs: Dict[UUID, JobRecord] = {
            record.job_id: record for record in repository.list()
        }
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()
        self._run_in_background = run_in_background
        self._fetcher = fetcher
        self._sleeper = sleeper

    async def create_job(self, upload: UploadFile) -> JobStatusResponse:
        contents = await upload.read()
        input_path = self._storage.save_bytes(contents, ".csv")

        job_id = uuid4()
        now = datetime.now(timezone.utc)
        record = JobRecord(
            job_id=job_id,
            status="pending",
            created_at=now,
            updated_at=now,
            input_path=input_path,
            output_path=self._storage.output_path(job_id),
            filename=upload.filename,
        )

        async with self._lock:
            self._jobs[job_id] = record

        await self._persist(record)

        _logger.info(
            "Job created",
            job_id=str(job_id),
            input_path=str(input_path),
            background=self._run_in_background,
        )

        if self._run_in_background:
            task = asyncio.create_task(self._process_job(job_id))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            await self._process_job(job_id)
        return record.to_response()

    async def get_job(self, job_id: UUID) -> JobStatusResponse | None:
        record = await self._get_record(job_id)
        return record.to_response() if record else None

    async def list_jobs(self) -> list[JobStatusResponse]:
        async with self._lock:
            records = sorted(
                self._jobs.values(), key=lambda item: item.created_at, reverse=True
            )
        return [record.to_response() for record in records]

    async def get_output_path(self, job_id: UUID) -> Path | None:
        """Return the merged CSV of a completed job, if any."""

        record = await self._get_record(job_id)
        if record is None or record.status != "completed":
            return None
        if not record.output_path.exists():
            return None
        return record.output_path

    async def _get_record(self, job_id: UUID) -> JobRecord | None:
        async with self._lock:
            record = self._jobs.get(job_id)
        if record:
            return record

        stored = await asyncio.to_thread(self._repository.get, job_id)
        if stored:
            async with self._lock:
                self._jobs[job_id] = stored
        return stored

    async def _process_job(self, job_id: UUID) -> None:
        async with self._lock:
            record = self._jobs.get(job_id)
            if not record:
                return
            record.status = "processing"
            record.updated_at = datetime.now(timezone.utc)
        await self._persist(record)

        _logger.info("Job processing started", job_id=str(job_id))

        try:
            rows = await asyncio.to_thread(read_records, record.input_path)
            header = await asyncio.to_thread(read_header, record.input_path)
            async with self._lock:
                record.total = len(rows)

            if self._fetcher is not None:
                outcomes = await self._lookup(job_id, rows, self._fetcher)
            else:
                async with SearchClient(self._settings) as client:
                    outcomes = await self._lookup(
                        job_id, rows, client.fetch_address_text
                    )

            await asyncio.to_thread(
                write_records,
                record.output_path,
                [outcome.record for outcome in outcomes],
                output_fieldnames(header, columns_from_settings(self._settings)),
            )

            async with self._lock:
                record.status = "completed"
                record.updated_at = datetime.now(timezone.utc)
            await self._persist(record)

            _logger.info(
                "Job completed",
                job_id=str(job_id),
                total=record.total,
                found=record.found,
            )

        except Exception as exc:  # pylint: disable=broad-except
            async with self._lock:
                record.errors.append(str(exc))
                record.status = "failed"
                record.updated_at = datetime.now(timezone.utc)
            _logger.error(
                "Job processing failed",
                job_id=str(job_id),
                error=str(exc),
                exc_info=True,
            )
            await self._persist(record)

    async def _lookup(
        self, job_id: UUID, rows: list[dict[str, str]], fetcher: FetchCallable
    ) -> list[LookupOutcome]:
        service = LookupService(
            self._settings, fetcher=fetcher, sleeper=self._sleeper
        )

        async def _on_progress(outcome: LookupOutcome) -> None:
            async with self._lock:
                record = self._jobs[job_id]
                record.results.append(_to_result(outcome))
                record.processed += 1
                if outcome.status == "found":
                    record.found += 1
                record.updated_at = datetime.now(timezone.utc)
            await self._persist(record)

        return await service.run(rows, on_progress=_on_progress)

    async def _persist(self, record: JobRecord) -> None:
        await asyncio.to_thread(self._repository.upsert, record)


_job_service: JobService | None = None


def get_job_service(settings: Settings) -> JobService:
    global _job_service
    if _job_service is None:
        storage = StorageService(settings.storage_root)
        repository = JobRepository(settings.storage_root / "jobs.db")
        _job_service = JobService(storage, repository, settings)
    return _job_service

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional
from uuid import UUID

from app.schemas.jobs import JobStatus, JobStatusResponse, LookupResult


@dataclass
class JobRecord:
    """Persisted representation of a lookup job lifecycle."""

    job_id: UUID
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    input_path: Path
    output_path: Path
    filename: Optional[str] = None
    total: int = 0
    processed: int = 0
    found: int = 0
    results: list[LookupResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_response(self) -> JobStatusResponse:
        return JobStatusResponse(
            job_id=self.job_id,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            filename=self.filename,
            total=self.total,
            processed=self.processed,
            found=self.found,
            results=list(self.results),
            errors=list(self.errors),
        )

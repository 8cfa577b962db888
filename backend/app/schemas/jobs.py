from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


JobStatus = Literal["pending", "processing", "completed", "failed"]
LookupStatus = Literal["found", "partial", "not_found", "error"]


class LookupResult(BaseModel):
    index: int
    query: str
    raw_text: str = ""
    street: str = ""
    postal_code: str = ""
    city: str = ""
    status: LookupStatus = "not_found"


class JobStatusResponse(BaseModel):
    job_id: UUID
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    filename: str | None = None
    total: int = 0
    processed: int = 0
    found: int = 0
    results: list[LookupResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class JobListResponse(BaseModel):
    jobs: list[JobStatusResponse]

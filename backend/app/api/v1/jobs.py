from __future__ import annotations

from pathlib import Path
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from app.core.config import get_settings
from app.schemas.jobs import JobListResponse, JobStatusResponse
from app.services.job_service import JobService, get_job_service

router = APIRouter()

_CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel"}


def get_service() -> JobService:
    settings = get_settings()
    return get_job_service(settings)


@router.post(
    "/", response_model=JobStatusResponse, status_code=status.HTTP_202_ACCEPTED
)
async def create_job(
    file: UploadFile = File(...),
    service: JobService = Depends(get_service),
) -> JobStatusResponse:
    content_type = (file.content_type or "").lower()
    suffix = Path(file.filename or "").suffix.lower()
    if content_type not in _CSV_CONTENT_TYPES and suffix != ".csv":
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Unsupported file type")
    try:
        return await service.create_job(file)
    finally:
        await file.close()


@router.get("/", response_model=JobListResponse)
async def list_jobs(service: JobService = Depends(get_service)) -> JobListResponse:
    jobs = await service.list_jobs()
    return JobListResponse(jobs=jobs)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job(
    job_id: UUID, service: JobService = Depends(get_service)
) -> JobStatusResponse:
    job = await service.get_job(job_id)
    if job is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Job not found")
    return job


@router.get("/{job_id}/output")
async def download_output(
    job_id: UUID, service: JobService = Depends(get_service)
) -> FileResponse:
    path = await service.get_output_path(job_id)
    if path is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Output not available")
    return FileResponse(path, media_type="text/csv", filename=f"{job_id}.csv")

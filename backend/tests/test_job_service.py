from __future__ import annotations

from tempfile import SpooledTemporaryFile

import pytest
from fastapi import UploadFile

from app.core.config import Settings
from app.services.job_service import JobService
from app.services.repository import JobRepository
from app.services.storage import StorageService
from app.services.tabular import read_records


CSV_PAYLOAD = (
    "Nom établissement,Adresse,Code postal,Ville\n"
    "Cabinet Dupont,,,Nantes\n"
    "Inconnu,,,Lyon\n"
).encode("utf-8")


async def _stub_fetcher(query):
    if query == "Cabinet Dupont Nantes":
        return "3 Rue Crébillon, 44000 Nantes - Itinéraire"
    return ""


async def _stub_sleeper(_delay):
    return None


def _upload(data: bytes, filename: str = "input.csv") -> UploadFile:
    file_obj = SpooledTemporaryFile()
    file_obj.write(data)
    file_obj.seek(0)
    return UploadFile(
        filename=filename, file=file_obj, headers={"content-type": "text/csv"}
    )


def _service(tmp_path) -> tuple[JobService, JobRepository]:
    settings = Settings(storage_root=tmp_path, delay_min=0.0, delay_max=0.0)
    storage = StorageService(tmp_path)
    repository = JobRepository(tmp_path / "jobs.db")
    service = JobService(
        storage,
        repository,
        settings,
        run_in_background=False,
        fetcher=_stub_fetcher,
        sleeper=_stub_sleeper,
    )
    return service, repository


@pytest.mark.asyncio
async def test_job_service_processes_job(tmp_path):
    service, repository = _service(tmp_path)
    upload = _upload(CSV_PAYLOAD)

    response = await service.create_job(upload)
    job = await service.get_job(response.job_id)

    await upload.close()

    assert job is not None
    assert job.status == "completed"
    assert job.filename == "input.csv"
    assert job.total == 2
    assert job.processed == 2
    assert job.found == 1
    assert [result.status for result in job.results] == ["found", "not_found"]
    assert job.results[0].postal_code == "44000"

    output_path = await service.get_output_path(response.job_id)
    assert output_path is not None
    rows = read_records(output_path)
    assert rows[0]["Adresse"] == "3 Rue Crébillon"
    assert rows[0]["Code postal"] == "44000"
    assert rows[0]["Ville"] == "Nantes"
    assert rows[1] == {
        "Nom établissement": "Inconnu",
        "Adresse": "",
        "Code postal": "",
        "Ville": "Lyon",
    }

    stored = repository.get(response.job_id)
    assert stored is not None
    assert stored.status == "completed"
    assert stored.found == 1


@pytest.mark.asyncio
async def test_job_service_marks_unreadable_upload_as_failed(tmp_path):
    service, _ = _service(tmp_path)
    upload = _upload(b"\xff\xfe\xfa not utf-8")

    response = await service.create_job(upload)
    job = await service.get_job(response.job_id)

    await upload.close()

    assert job is not None
    assert job.status == "failed"
    assert job.errors
    assert await service.get_output_path(response.job_id) is None


@pytest.mark.asyncio
async def test_jobs_are_reloaded_from_repository(tmp_path):
    service, _ = _service(tmp_path)
    upload = _upload(CSV_PAYLOAD)
    response = await service.create_job(upload)
    await upload.close()

    reloaded, _ = _service(tmp_path)
    jobs = await reloaded.list_jobs()

    assert [job.job_id for job in jobs] == [response.job_id]
    assert jobs[0].status == "completed"


@pytest.mark.asyncio
async def test_job_with_header_only_upload_serves_header_only_output(tmp_path):
    service, _ = _service(tmp_path)
    upload = _upload("Nom établissement,Adresse,Ville\n".encode("utf-8"))

    response = await service.create_job(upload)
    job = await service.get_job(response.job_id)

    await upload.close()

    assert job is not None
    assert job.status == "completed"
    assert job.total == 0

    output_path = await service.get_output_path(response.job_id)
    assert output_path is not None
    assert output_path.read_text(encoding="utf-8").splitlines() == [
        "Nom établissement,Adresse,Ville,Code postal"
    ]

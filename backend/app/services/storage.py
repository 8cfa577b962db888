from __future__ import annotations

from pathlib import Path
from uuid import UUID, uuid4

from app.core.logging import get_logger


_logger = get_logger(__name__)


class StorageService:
    """Handles persistence of uploaded CSV files and lookup results."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.uploads_dir = self.root / "uploads"
        self.outputs_dir = self.root / "outputs"
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.outputs_dir.mkdir(parents=True, exist_ok=True)

    def save_bytes(self, data: bytes, suffix: str = "") -> Path:
        """Persist raw bytes to a unique file under storage root."""

        filename = f"{uuid4().hex}{suffix}"
        destination = self.uploads_dir / filename
        destination.write_bytes(data)
        _logger.info("Stored upload", destination=str(destination), size=len(data))
        return destination

    def output_path(self, job_id: UUID) -> Path:
        """Location of the merged CSV produced by ``job_id``."""

        return self.outputs_dir / f"{job_id.hex}.csv"

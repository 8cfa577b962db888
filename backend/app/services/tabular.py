from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Mapping, Sequence, TextIO

from app.core.logging import get_logger


_logger = get_logger(__name__)


def _load(handle: TextIO) -> list[dict[str, str]]:
    reader = csv.DictReader(handle)
    records: list[dict[str, str]] = []
    for row in reader:
        records.append(
            {key: (value or "") for key, value in row.items() if key is not None}
        )
    return records


def read_records(path: Path) -> list[dict[str, str]]:
    """Read establishment rows from a CSV file."""

    with path.open("r", newline="", encoding="utf-8-sig") as handle:
        records = _load(handle)
    _logger.info("Records loaded", path=str(path), count=len(records))
    return records


def read_header(path: Path) -> list[str]:
    """Return the column names of a CSV file, in file order."""

    with path.open("r", newline="", encoding="utf-8-sig") as handle:
        return list(csv.DictReader(handle).fieldnames or [])


def _fieldnames(
    records: Iterable[Mapping[str, str]], initial: Sequence[str] = ()
) -> list[str]:
    seen: dict[str, None] = dict.fromkeys(initial)
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def write_records(
    path: Path, records: list[Mapping[str, str]], fieldnames: Sequence[str] = ()
) -> None:
    """Write rows to ``path``.

    The header starts with ``fieldnames`` and continues with any other keys
    found in ``records``, in first-seen order. A header-only file is written
    when there are no records.
    """

    if not records:
        _logger.warning("No records to write", path=str(path))

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(
            handle, fieldnames=_fieldnames(records, fieldnames), restval=""
        )
        writer.writeheader()
        writer.writerows(records)
    _logger.info("Records written", path=str(path), count=len(records))

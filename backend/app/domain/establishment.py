from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from app.domain.address import ParsedAddress, extract_street


EstablishmentRecord = dict[str, str]

_WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class EstablishmentColumns:
    """Column names of the tabular source."""

    name: str = "Nom établissement"
    street: str = "Adresse"
    postal_code: str = "Code postal"
    city: str = "Ville"


def _value(record: Mapping[str, str | None], column: str) -> str:
    return (record.get(column) or "").strip()


def _join(*parts: str) -> str:
    joined = " ".join(part for part in parts if part)
    return _WHITESPACE_PATTERN.sub(" ", joined).strip()


def build_search_query(
    record: Mapping[str, str | None], columns: EstablishmentColumns
) -> str:
    """Compose "<name> <street> <city>" for the first lookup."""

    return _join(
        _value(record, columns.name),
        _value(record, columns.street),
        _value(record, columns.city),
    )


def build_street_query(
    record: Mapping[str, str | None], columns: EstablishmentColumns
) -> str | None:
    """Compose a narrower query keeping only the number and street name."""

    street = _value(record, columns.street)
    if not street:
        return None
    return _join(
        _value(record, columns.name),
        extract_street(street),
        _value(record, columns.city),
    )


def merge_parsed_address(
    record: Mapping[str, str | None],
    parsed: ParsedAddress,
    columns: EstablishmentColumns,
) -> EstablishmentRecord:
    """Overlay non-empty parsed fields on a copy of ``record``."""

    merged: EstablishmentRecord = {key: value or "" for key, value in record.items()}
    candidates = {
        columns.street: parsed.street,
        columns.postal_code: parsed.postal_code,
        columns.city: parsed.city,
    }
    for column, new in candidates.items():
        merged[column] = new or merged.get(column, "")
    return merged

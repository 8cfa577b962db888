from __future__ import annotations

from app.domain.address import (
    AddressNormalizer,
    ParsedAddress,
    extract_street,
    normalize_address,
)

__all__ = ["AddressNormalizer", "ParsedAddress", "extract_street", "normalize_address"]

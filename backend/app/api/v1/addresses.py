from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.core.config import get_settings
from app.schemas.extraction import (
    AddressTextRequest,
    ParsedAddressResponse,
    StreetResponse,
)
from app.services.parsing import AddressNormalizer, extract_street


router = APIRouter()


def get_normalizer() -> AddressNormalizer:
    settings = get_settings()
    return AddressNormalizer(advanced=settings.advanced_parsing)


@router.post(
    "/normalize",
    response_model=ParsedAddressResponse,
    status_code=status.HTTP_200_OK,
)
async def normalize(
    payload: AddressTextRequest,
    normalizer: AddressNormalizer = Depends(get_normalizer),
) -> ParsedAddressResponse:
    parsed = normalizer.normalize(payload.text)
    return ParsedAddressResponse(**parsed.to_dict())


@router.post(
    "/street",
    response_model=StreetResponse,
    status_code=status.HTTP_200_OK,
)
async def street(payload: AddressTextRequest) -> StreetResponse:
    return StreetResponse(street=extract_street(payload.text))

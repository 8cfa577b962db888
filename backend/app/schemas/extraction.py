from __future__ import annotations

from pydantic import BaseModel, Field


class AddressTextRequest(BaseModel):
    text: str = Field(default="", max_length=5000)


class ParsedAddressResponse(BaseModel):
    street: str = ""
    postal_code: str = ""
    city: str = ""


class StreetResponse(BaseModel):
    street: str = ""

"""
schemas/client.py
-----------------
Pydantic request/response models for Client.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from offerdesk.schemas.common import StrictPayload, blank_or_email, clean_tags


class ClientCreate(StrictPayload):
    name: str = Field(..., min_length=1, max_length=255, examples=["Jane Doe"])
    company: str = Field(default="", max_length=255)
    # Blank allowed: many imported contacts have no email.
    email: str = Field(default="", max_length=320)
    phone: str = Field(default="", max_length=64)
    tags: list[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return blank_or_email(v)

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: list[str]) -> list[str]:
        return clean_tags(v)


class ClientUpdate(StrictPayload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    company: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=64)
    tags: Optional[list[str]] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else blank_or_email(v)

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return None if v is None else clean_tags(v)


class ClientRead(BaseModel):
    id: str
    name: str
    company: str
    email: str
    phone: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientImportRequest(StrictPayload):
    """Rows already parsed from an uploaded CSV file."""
    rows: list[dict] = Field(..., min_length=1, max_length=5000)


class ClientImportError(BaseModel):
    row: int
    detail: str


class ClientImportResult(BaseModel):
    created: int
    failed: int
    errors: list[ClientImportError]

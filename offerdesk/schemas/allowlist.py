"""
schemas/allowlist.py
--------------------
Admin allowlist request/response models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from offerdesk.schemas.common import StrictPayload, normalize_email


class AllowedEmailCreate(StrictPayload):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)


class AllowedEmailRead(BaseModel):
    id: str
    email: str
    created_by: str
    created_at: datetime
    used_at: Optional[datetime]

    model_config = {"from_attributes": True}


class AllowedEmailList(BaseModel):
    items: list[AllowedEmailRead]

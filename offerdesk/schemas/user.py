"""
schemas/user.py
---------------
Pydantic models for registration, login, and responses.

Security note:
  - hashed_password is NEVER included in any response schema.
  - Registration bodies carry no role and no organisation: the role comes
    from the admin allowlist, the organisation from server configuration.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from offerdesk.schemas.common import StrictPayload, normalize_email


class UserRegister(StrictPayload):
    email: str
    password: str = Field(..., min_length=8, max_length=72)
    display_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)


class UserRead(BaseModel):
    id: str
    email: str
    display_name: str
    role: str
    org_id: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserRead

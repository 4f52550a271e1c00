"""
schemas/common.py
-----------------
Shared base for inbound request bodies.

Naming convention (per resource):
  XCreate  → inbound create body
  XUpdate  → inbound partial update body (only sent fields are applied)
  XRead    → outbound response body

Inbound bodies reject unknown fields and, explicitly, any organisation id:
the organisation always comes from the caller's session.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, TypeAdapter, model_validator

from offerdesk.core.payloads import find_tenant_keys


class StrictPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def reject_org_override(cls, data: Any) -> Any:
        if isinstance(data, dict) and find_tenant_keys(data.keys()):
            raise ValueError("The organization cannot be set in the request payload")
        return data


def clean_tags(tags: list[str]) -> list[str]:
    """Strip blanks; order and duplicates are left to the caller."""
    return [t.strip() for t in tags if t and t.strip()]


_EMAIL = TypeAdapter(EmailStr)


def normalize_email(v: str) -> str:
    """Trim + lowercase, then validate the address."""
    v = (v or "").strip().lower()
    try:
        _EMAIL.validate_python(v)
    except ValueError:
        raise ValueError("Invalid email address")
    return v


def blank_or_email(v: str) -> str:
    v = (v or "").strip()
    return normalize_email(v) if v else ""

"""
schemas/template.py
-------------------
Pydantic models for Template and for the structured template content.

Template.content is stored as a JSON string with the shape
    {"version": 1, "fields": [TemplateField, ...]}
Limits (50 fields, 50 options, 100-char names) keep templates renderable.
"""

import re
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from offerdesk.schemas.common import StrictPayload, clean_tags

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

FieldType = Literal["text", "number", "date", "select", "textarea"]


class TemplateField(BaseModel):
    id: Optional[str] = None
    field_name: str = Field(..., min_length=1, max_length=100)
    field_type: FieldType
    placeholder: Optional[str] = None
    required: bool = False
    options: Optional[list[str]] = Field(default=None, max_length=50)
    meta: Optional[dict[str, Any]] = None

    @field_validator("options")
    @classmethod
    def check_options(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        for option in v:
            if not option or len(option) > 100:
                raise ValueError("Select options must be 1 to 100 characters long")
        return v

    @model_validator(mode="after")
    def select_needs_options(self) -> "TemplateField":
        if self.field_type == "select" and not self.options:
            raise ValueError("Fields of type 'select' need at least one option")
        return self


class TemplateContent(BaseModel):
    version: int = Field(default=1, gt=0)
    fields: list[TemplateField] = Field(default_factory=list, max_length=50)


def _check_slug(v: str) -> str:
    if not SLUG_PATTERN.match(v):
        raise ValueError("slug must contain only lowercase letters, digits and single hyphens")
    return v


class TemplateCreate(StrictPayload):
    title: str = Field(..., min_length=1, max_length=255, examples=["Website redesign"])
    slug: str = Field(..., min_length=1, max_length=255, examples=["website-redesign"])
    content: str = ""
    category: str = Field(default="", max_length=255)
    tags: list[str] = Field(default_factory=list)

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: str) -> str:
        return _check_slug(v)

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: list[str]) -> list[str]:
        return clean_tags(v)


class TemplateUpdate(StrictPayload):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=255)
    tags: Optional[list[str]] = None

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_slug(v)

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return None if v is None else clean_tags(v)


class TemplateRead(BaseModel):
    id: str
    title: str
    slug: str
    content: str
    category: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

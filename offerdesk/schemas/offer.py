"""
schemas/offer.py
----------------
Pydantic models for offers and their embedded items.

Amounts are integer cents. Totals (subtotal, tax_amount, total) are not
accepted from callers: the lifecycle engine computes them.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from offerdesk.models.offer import OfferStatus
from offerdesk.schemas.common import StrictPayload


def _two_decimals(v: float) -> float:
    rate = Decimal(str(v))
    if rate != rate.quantize(Decimal("0.01")):
        raise ValueError("tax_rate can have at most two decimals")
    return v


class OfferItem(StrictPayload):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    description: str = Field(default="", max_length=2000)
    quantity: float = Field(..., ge=0)
    unit_price: int = Field(..., ge=0, description="Unit price in cents")
    # Trusted as sent; mismatches with quantity × unit_price are logged.
    total: int = Field(..., ge=0, description="Line total in cents")


class OfferCreate(StrictPayload):
    client_id: str = Field(..., min_length=1)
    template_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=255)
    items: list[OfferItem] = Field(default_factory=list)
    tax_rate: float = Field(default=0, ge=0, le=100)

    @field_validator("tax_rate")
    @classmethod
    def check_tax_rate(cls, v: float) -> float:
        return _two_decimals(v)


class OfferUpdate(StrictPayload):
    """Content edit; only allowed while the offer is a draft."""
    client_id: Optional[str] = Field(default=None, min_length=1)
    template_id: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    items: Optional[list[OfferItem]] = None
    tax_rate: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("tax_rate")
    @classmethod
    def check_tax_rate(cls, v: Optional[float]) -> Optional[float]:
        return None if v is None else _two_decimals(v)


class OfferStatusChange(StrictPayload):
    # Unknown values are reported as invalid transitions, not schema errors.
    status: str = Field(..., min_length=1, max_length=20)


class OfferItemRead(BaseModel):
    id: str
    description: str
    quantity: float
    unit_price: int
    total: int


class OfferRead(BaseModel):
    id: str
    client_id: str
    template_id: Optional[str]
    title: str
    items: list[OfferItemRead]
    subtotal: int
    tax_rate: float
    tax_amount: int
    total: int
    status: OfferStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OfferListResponse(BaseModel):
    total: int
    items: list[OfferRead]

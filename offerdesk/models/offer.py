"""
models/offer.py
---------------
Commercial offer ORM model.

Money columns are integer minor units (cents). The identity
    total == subtotal + tax_amount
is maintained by services/offer_lifecycle.py, which is the only code that
assigns subtotal / tax_amount / total.

Items are embedded as a JSON array; they are not addressable on their own.
"""

import uuid
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import JSON, BigInteger, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from offerdesk.db.base import Base, TenantMixin, TimestampMixin


class OfferStatus(str, PyEnum):
    draft = "draft"
    sent = "sent"
    accepted = "accepted"
    rejected = "rejected"


class Offer(Base, TenantMixin, TimestampMixin):
    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    template_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    items: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)

    subtotal: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    tax_rate: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False, default=0
    )
    tax_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OfferStatus.draft.value
    )

    client: Mapped["Client"] = relationship("Client", back_populates="offers")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Offer id={self.id} org_id={self.org_id} status={self.status}>"

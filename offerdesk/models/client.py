"""
models/client.py
----------------
Client (customer) ORM model.

Clients belong to exactly one organisation. Every query against this table
filters on org_id; see db/repository.py.
"""

import uuid

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from offerdesk.db.base import Base, TenantMixin, TimestampMixin


class Client(Base, TenantMixin, TimestampMixin):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    # Stored as given: callers dedupe, storage does not reorder.
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    offers: Mapped[list["Offer"]] = relationship(  # noqa: F821
        "Offer", back_populates="client"
    )

    def __repr__(self) -> str:
        return f"<Client id={self.id} org_id={self.org_id} name={self.name}>"

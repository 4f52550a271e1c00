"""
models/template.py
------------------
Offer template ORM model.

slug is unique per organisation, not globally: two organisations may both
own a "standard-offer" template.
"""

import uuid

from sqlalchemy import JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from offerdesk.db.base import Base, TenantMixin, TimestampMixin


class Template(Base, TenantMixin, TimestampMixin):
    __tablename__ = "templates"
    __table_args__ = (
        UniqueConstraint("org_id", "slug", name="uq_templates_org_slug"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    # JSON document {"version": 1, "fields": [...]}, validated on write.
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<Template id={self.id} org_id={self.org_id} slug={self.slug}>"

"""
models/allowlist.py
-------------------
Admin allowlist: emails allowed to receive the ADMIN role when their
account is created.

email is stored normalised (trimmed, lowercased). used_at is written once,
the first time the entry backs a successful ADMIN grant.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from offerdesk.db.base import Base, TenantMixin


class AdminAllowedEmail(Base, TenantMixin):
    __tablename__ = "admin_allowed_emails"
    __table_args__ = (
        UniqueConstraint("org_id", "email", name="uq_admin_allowed_emails_org_email"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<AdminAllowedEmail org_id={self.org_id} email={self.email} used={self.used_at is not None}>"

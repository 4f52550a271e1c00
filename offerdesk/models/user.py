"""
models/user.py
--------------
Account record of the identity-provider adapter.

This table backs /register and /login only. The tenant core never reads
it: request identity comes from the session token (core/identity.py).

Role design:
  - 'ADMIN': Manages clients, templates, offer statuses and the allowlist.
  - 'USER':  Reads tenant data and drafts offers.
The role is decided once, at account creation, by the allowlist service.

The hashed_password column stores bcrypt hashes only - plain text is
never stored and never logged.
"""

import uuid
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from offerdesk.core.identity import Role
from offerdesk.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Role.USER.value
    )
    # Null until the account is attached to an organisation.
    org_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"

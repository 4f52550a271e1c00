"""
services/allowlist_service.py
-----------------------------
Admin allowlist: the only way an account can start out as ADMIN.

Rules:
  - Emails are compared after trim + lowercase, exact match.
  - The allowlist check is an authorization check, so it fails CLOSED:
    any storage or driver error means "not allowed".
  - Lookups and the used_at stamp run inside a SAVEPOINT, so a failure
    here leaves the caller's transaction usable.
  - used_at is stamped once, by a conditional UPDATE, after the account
    it backs has been created. Later calls are no-ops returning False.
  - Nothing here upgrades an existing USER.

Entries are created by an existing admin (settings routes) or by the
out-of-band bootstrap_admin.py command for the very first admin.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.core.errors import AllowlistLookupFailure, ValidationError
from offerdesk.core.identity import Role
from offerdesk.core.logging import get_logger
from offerdesk.db.repository import TenantScopedRepository
from offerdesk.models.allowlist import AdminAllowedEmail

logger = get_logger(__name__)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AllowlistService(TenantScopedRepository):
    model = AdminAllowedEmail
    entity_name = "Allowed email"
    writable_fields = frozenset({"email", "created_by"})

    @classmethod
    async def _find(
        cls, db: AsyncSession, email: str, org_id: str
    ) -> Optional[AdminAllowedEmail]:
        result = await db.execute(
            select(AdminAllowedEmail).where(
                AdminAllowedEmail.org_id == org_id,
                AdminAllowedEmail.email == email,
            )
        )
        return result.scalar_one_or_none()

    @classmethod
    async def is_email_allowed_for_admin(
        cls, db: AsyncSession, email: Optional[str], org_id: Optional[str]
    ) -> bool:
        normalized = normalize_email(email)
        if not normalized or not org_id:
            return False
        try:
            async with db.begin_nested():
                entry = await cls._find(db, normalized, org_id)
        except Exception as exc:
            failure = AllowlistLookupFailure(str(exc))
            logger.error(
                "Allowlist lookup failed, denying admin",
                code=failure.code,
                org_id=org_id,
                error=failure.message,
            )
            return False
        return entry is not None

    @classmethod
    async def assign_initial_role_for_new_user(
        cls, db: AsyncSession, email: Optional[str], org_id: Optional[str]
    ) -> Role:
        allowed = await cls.is_email_allowed_for_admin(db, email, org_id)
        return Role.ADMIN if allowed else Role.USER

    @classmethod
    async def mark_email_as_used_if_admin(
        cls, db: AsyncSession, email: Optional[str], org_id: Optional[str]
    ) -> bool:
        """
        Stamp used_at on an unused entry. True only when this call stamped it.
        """
        normalized = normalize_email(email)
        if not normalized or not org_id:
            return False
        try:
            async with db.begin_nested():
                result = await db.execute(
                    update(AdminAllowedEmail)
                    .where(
                        AdminAllowedEmail.org_id == org_id,
                        AdminAllowedEmail.email == normalized,
                        AdminAllowedEmail.used_at.is_(None),
                    )
                    .values(used_at=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )
        except Exception as exc:
            logger.error("Could not mark allowlist entry as used", org_id=org_id, error=str(exc))
            return False

        marked = result.rowcount > 0
        if marked:
            logger.info("Allowlist entry consumed", org_id=org_id)
        return marked

    # ── Management ────────────────────────────────────────────────────────────

    @classmethod
    async def add_entry(
        cls, db: AsyncSession, org_id: str, email: str, created_by: str
    ) -> AdminAllowedEmail:
        """
        Raises ValidationError for a blank email or one already on the list.
        """
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("email is required")
        if await cls._find(db, normalized, org_id) is not None:
            raise ValidationError(f"'{normalized}' is already allowed for this organization")
        try:
            return await cls.create(
                db, org_id, {"email": normalized, "created_by": created_by or ""}
            )
        except IntegrityError:
            raise ValidationError(f"'{normalized}' is already allowed for this organization")

    @classmethod
    async def list_entries(cls, db: AsyncSession, org_id: str) -> list[AdminAllowedEmail]:
        return await cls.list_for_org(db, org_id)

    @classmethod
    async def delete_entry(cls, db: AsyncSession, org_id: str, entry_id: str) -> None:
        """Missing and cross-tenant ids both raise NotFound."""
        await cls.delete(db, entry_id, org_id)

"""
db/repository.py
----------------
Tenant-scoped repository base.

Critical security invariant:
  Every query MUST include org_id in the WHERE clause. The org_id argument
  always comes from the authenticated Principal, never from a payload.

Tenant-boundary opacity:
  get_by_id / update / delete raise the same NotFound whether the id does
  not exist or belongs to another organisation.

Concurrency:
  update and delete lock the row (SELECT ... FOR UPDATE) inside the
  request transaction, so two concurrent updates of one row serialise
  instead of losing a write.
"""

from typing import Any, ClassVar, FrozenSet, List, Mapping, Optional, Type

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.core.errors import NotFound, ValidationError
from offerdesk.core.logging import get_logger
from offerdesk.core.payloads import reject_tenant_override
from offerdesk.db.base import Base

logger = get_logger(__name__)


class TenantScopedRepository:
    """
    Generic CRUD for a model mixing in TenantMixin.

    Subclasses set:
        model:           the ORM class
        entity_name:     used in NotFound messages ("Client not found")
        writable_fields: columns create/update may assign
    """

    model: ClassVar[Type[Base]]
    entity_name: ClassVar[str] = "Resource"
    writable_fields: ClassVar[FrozenSet[str]] = frozenset()

    # ── Guards ────────────────────────────────────────────────────────────────

    @staticmethod
    def _require_org(org_id: Optional[str]) -> str:
        if not org_id:
            # Programming error: callers always pass Principal.org_id.
            raise ValueError("org_id is required")
        return org_id

    @classmethod
    def check_fields(cls, fields: Mapping[str, Any]) -> None:
        reject_tenant_override(dict(fields))
        unknown = sorted(set(fields) - cls.writable_fields)
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")

    @classmethod
    def scoped(cls, org_id: str):
        return select(cls.model).where(cls.model.org_id == cls._require_org(org_id))

    # ── Reads ─────────────────────────────────────────────────────────────────

    @classmethod
    async def list_for_org(
        cls,
        db: AsyncSession,
        org_id: str,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Any]:
        """All rows of the organisation, newest first."""
        stmt = cls.scoped(org_id).order_by(cls.model.created_at.desc()).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def count(cls, db: AsyncSession, org_id: str) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(cls.model)
            .where(cls.model.org_id == cls._require_org(org_id))
        )
        return result.scalar_one()

    @classmethod
    async def get_by_id(
        cls,
        db: AsyncSession,
        entity_id: str,
        org_id: str,
        for_update: bool = False,
    ) -> Any:
        stmt = cls.scoped(org_id).where(cls.model.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        obj = result.scalar_one_or_none()
        if obj is None:
            raise NotFound.for_entity(cls.entity_name)
        return obj

    @classmethod
    async def exists(cls, db: AsyncSession, entity_id: str, org_id: str) -> bool:
        result = await db.execute(
            select(cls.model.id).where(
                cls.model.id == entity_id,
                cls.model.org_id == cls._require_org(org_id),
            )
        )
        return result.scalar_one_or_none() is not None

    # ── Writes ────────────────────────────────────────────────────────────────

    @classmethod
    async def create(
        cls, db: AsyncSession, org_id: str, fields: Mapping[str, Any]
    ) -> Any:
        """Insert a row stamped with org_id. Validation happens before any write."""
        cls.check_fields(fields)
        obj = cls.model(**dict(fields), org_id=cls._require_org(org_id))
        db.add(obj)
        await db.flush()
        await db.refresh(obj)
        logger.info(f"{cls.entity_name} created", id=obj.id, org_id=org_id)
        return obj

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        entity_id: str,
        org_id: str,
        fields: Mapping[str, Any],
    ) -> Any:
        cls.check_fields(fields)
        obj = await cls.get_by_id(db, entity_id, org_id, for_update=True)
        return await cls.apply(db, obj, fields)

    @classmethod
    async def apply(cls, db: AsyncSession, obj: Any, fields: Mapping[str, Any]) -> Any:
        """Assign already-checked fields to a locked row and flush."""
        for key, value in fields.items():
            setattr(obj, key, value)
        await db.flush()
        await db.refresh(obj)
        logger.info(
            f"{cls.entity_name} updated",
            id=obj.id,
            org_id=obj.org_id,
            fields=sorted(fields),
        )
        return obj

    @classmethod
    async def delete(cls, db: AsyncSession, entity_id: str, org_id: str) -> None:
        obj = await cls.get_by_id(db, entity_id, org_id, for_update=True)
        await db.delete(obj)
        await db.flush()
        logger.info(f"{cls.entity_name} deleted", id=entity_id, org_id=org_id)

"""
services/client_service.py
--------------------------
Tenant-scoped client repository, plus the write boundary used by the CSV
importer.

Bulk imports go through the same create() as single creates, row by row,
so the tenant rules (org_id stamped from the session, org_id never taken
from a row) apply identically.
"""

import re
from typing import Any, Mapping, Sequence

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.core.errors import ValidationError
from offerdesk.core.logging import get_logger
from offerdesk.db.repository import TenantScopedRepository
from offerdesk.models.client import Client
from offerdesk.models.offer import Offer
from offerdesk.schemas.client import (
    ClientCreate,
    ClientImportError,
    ClientImportResult,
)

logger = get_logger(__name__)

_TAG_SEPARATORS = re.compile(r"[,|]")


def parse_tags(raw: Any) -> list[str]:
    """'Tech, Finance|Retail' -> ['Tech', 'Finance', 'Retail']"""
    if isinstance(raw, (list, tuple)):
        return [str(t).strip() for t in raw if str(t).strip()]
    if not raw or not str(raw).strip():
        return []
    return [t.strip() for t in _TAG_SEPARATORS.split(str(raw)) if t.strip()]


def _first_error(exc: SchemaValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid row"
    first = errors[0]
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "__root__")
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


class ClientService(TenantScopedRepository):
    model = Client
    entity_name = "Client"
    writable_fields = frozenset({"name", "company", "email", "phone", "tags"})

    @classmethod
    async def delete(cls, db: AsyncSession, entity_id: str, org_id: str) -> None:
        """Clients referenced by offers cannot be deleted."""
        client = await cls.get_by_id(db, entity_id, org_id, for_update=True)
        result = await db.execute(
            select(func.count())
            .select_from(Offer)
            .where(Offer.org_id == org_id, Offer.client_id == client.id)
        )
        if result.scalar_one() > 0:
            raise ValidationError("This client still has offers and cannot be deleted")
        await db.delete(client)
        await db.flush()
        logger.info("Client deleted", id=entity_id, org_id=org_id)

    @classmethod
    async def import_rows(
        cls,
        db: AsyncSession,
        org_id: str,
        rows: Sequence[Mapping[str, Any]],
        chunk_size: int = 100,
    ) -> ClientImportResult:
        """
        Create one client per row. Invalid rows are reported, valid rows are
        created; a storage failure aborts the whole import (the request
        transaction rolls back).
        """
        chunk_size = max(1, chunk_size)
        created = 0
        errors: list[ClientImportError] = []

        for start in range(0, len(rows), chunk_size):
            chunk = rows[start:start + chunk_size]
            for offset, row in enumerate(chunk):
                index = start + offset
                try:
                    if not isinstance(row, Mapping):
                        raise ValidationError("Row must be an object")
                    candidate = dict(row)
                    if "tags" in candidate:
                        candidate["tags"] = parse_tags(candidate["tags"])
                    data = ClientCreate.model_validate(candidate)
                    await cls.create(db, org_id, data.model_dump())
                    created += 1
                except ValidationError as exc:
                    errors.append(ClientImportError(row=index, detail=exc.message))
                except SchemaValidationError as exc:
                    errors.append(ClientImportError(row=index, detail=_first_error(exc)))
            logger.info(
                "Client import chunk processed",
                org_id=org_id,
                start=start,
                size=len(chunk),
            )

        logger.info("Client import finished", org_id=org_id, created=created, failed=len(errors))
        return ClientImportResult(created=created, failed=len(errors), errors=errors)

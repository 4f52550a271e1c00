"""
services/offer_service.py
-------------------------
Tenant-scoped offer repository.

Every write goes through services/offer_lifecycle.py:
  - create computes totals from the items and starts the offer as a draft;
  - update is a content edit, refused once the offer has left draft,
    with totals recomputed whenever items or tax rate change;
  - change_status runs the state machine and refreshes totals on the
    same locked row, in the same transaction.

client_id / template_id must point at rows of the caller's organisation.
A foreign id gets the same error as a missing one.
"""

from typing import Any, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.core.errors import ValidationError
from offerdesk.core.identity import Principal, ensure_admin
from offerdesk.core.logging import get_logger
from offerdesk.core.payloads import reject_tenant_override
from offerdesk.db.repository import TenantScopedRepository
from offerdesk.models.offer import Offer, OfferStatus
from offerdesk.services import offer_lifecycle
from offerdesk.services.client_service import ClientService
from offerdesk.services.template_service import TemplateService

logger = get_logger(__name__)


class OfferService(TenantScopedRepository):
    model = Offer
    entity_name = "Offer"
    writable_fields = frozenset(
        offer_lifecycle.CONTENT_FIELDS
        | {"subtotal", "tax_amount", "total", "status"}
    )

    # ── Helpers ───────────────────────────────────────────────────────────────

    @classmethod
    async def _check_references(
        cls, db: AsyncSession, org_id: str, changes: Mapping[str, Any]
    ) -> None:
        if "client_id" in changes:
            client_id = changes["client_id"]
            if not client_id or not await ClientService.exists(db, client_id, org_id):
                raise ValidationError("client_id does not match a client of your organization")
        template_id = changes.get("template_id")
        if template_id and not await TemplateService.exists(db, template_id, org_id):
            raise ValidationError("template_id does not match a template of your organization")

    @staticmethod
    def _audit_items(items: Any, org_id: str, offer_id: Optional[str] = None) -> None:
        for mismatch in offer_lifecycle.audit_item_totals(items or []):
            logger.warning(
                "Offer item total differs from quantity x unit_price",
                org_id=org_id,
                offer_id=offer_id,
                item_id=mismatch["id"],
                expected=mismatch["expected"],
                total=mismatch["total"],
            )

    @staticmethod
    def _check_content_keys(data: Mapping[str, Any]) -> None:
        reject_tenant_override(dict(data))
        unknown = sorted(set(data) - offer_lifecycle.CONTENT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")

    # ── Reads ─────────────────────────────────────────────────────────────────

    @classmethod
    async def list_offers(
        cls,
        db: AsyncSession,
        org_id: str,
        skip: int = 0,
        limit: int = 20,
        status: Optional[OfferStatus] = None,
        client_id: Optional[str] = None,
    ) -> tuple[int, list[Offer]]:
        """
        Paginated offer list, strictly scoped to the organisation.

        Returns:
            (total_count, page_of_offers)
        """
        filters = [Offer.org_id == org_id]
        if status is not None:
            filters.append(Offer.status == OfferStatus(status).value)
        if client_id:
            filters.append(Offer.client_id == client_id)

        count_result = await db.execute(
            select(func.count()).select_from(Offer).where(*filters)
        )
        total = count_result.scalar_one()

        result = await db.execute(
            select(Offer)
            .where(*filters)
            .order_by(Offer.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    # ── Writes ────────────────────────────────────────────────────────────────

    @classmethod
    async def create(
        cls, db: AsyncSession, org_id: str, fields: Mapping[str, Any]
    ) -> Offer:
        """New offers always start as drafts with server-computed totals."""
        cls._check_content_keys(fields)
        data = dict(fields)
        if not data.get("title"):
            raise ValidationError("title is required")
        if "client_id" not in data:
            raise ValidationError("client_id is required")
        await cls._check_references(db, org_id, data)

        items = [dict(item) for item in data.get("items") or []]
        tax_rate = data.get("tax_rate") or 0
        totals = offer_lifecycle.recompute_totals(items, tax_rate)
        cls._audit_items(items, org_id)

        return await super().create(
            db,
            org_id,
            {
                "client_id": data["client_id"],
                "template_id": data.get("template_id") or None,
                "title": data["title"],
                "items": items,
                "tax_rate": tax_rate,
                "status": OfferStatus.draft.value,
                **totals.as_dict(),
            },
        )

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        entity_id: str,
        org_id: str,
        fields: Mapping[str, Any],
    ) -> Offer:
        """Content edit of a draft offer."""
        cls._check_content_keys(fields)
        changes = dict(fields)
        for key in ("title", "items", "tax_rate"):
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} cannot be null")
        if "items" in changes:
            changes["items"] = [dict(item) for item in changes["items"] or []]

        offer = await cls.get_by_id(db, entity_id, org_id, for_update=True)
        assignments = offer_lifecycle.apply_content_changes(offer, changes)
        await cls._check_references(db, org_id, changes)
        if "items" in changes:
            cls._audit_items(changes["items"], org_id, offer_id=offer.id)
        return await cls.apply(db, offer, assignments)

    @classmethod
    async def change_status(
        cls,
        db: AsyncSession,
        entity_id: str,
        org_id: str,
        target: Any,
        principal: Principal,
    ) -> Offer:
        ensure_admin(principal)
        offer = await cls.get_by_id(db, entity_id, org_id, for_update=True)
        previous = offer.status
        offer_lifecycle.transition(offer, target, principal)
        await db.flush()
        await db.refresh(offer)
        logger.info(
            "Offer status changed",
            id=offer.id,
            org_id=org_id,
            previous=previous,
            status=offer.status,
            total=offer.total,
        )
        return offer

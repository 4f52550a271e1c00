"""
services/dashboard_service.py
-----------------------------
Read-only organisation summary: counters and the latest offers.

The client join is scoped to the organisation on both sides, so an offer
can never pick up the name of another tenant's client. Clients with
offers cannot be deleted, so every offer has a client row to join.
"""

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.models.client import Client
from offerdesk.models.offer import Offer, OfferStatus
from offerdesk.schemas.dashboard import DashboardSummary, RecentOffer
from offerdesk.services.client_service import ClientService
from offerdesk.services.offer_service import OfferService
from offerdesk.services.template_service import TemplateService


class DashboardService:

    @staticmethod
    async def offers_by_status(db: AsyncSession, org_id: str) -> dict[str, int]:
        result = await db.execute(
            select(Offer.status, func.count())
            .where(Offer.org_id == org_id)
            .group_by(Offer.status)
        )
        counts = {status.value: 0 for status in OfferStatus}
        for status, count in result.all():
            counts[status] = count
        return counts

    @staticmethod
    async def recent_offers(
        db: AsyncSession, org_id: str, limit: int = 5
    ) -> list[RecentOffer]:
        result = await db.execute(
            select(Offer, Client.company, Client.name)
            .join(
                Client,
                and_(Client.id == Offer.client_id, Client.org_id == org_id),
            )
            .where(Offer.org_id == org_id)
            .order_by(Offer.created_at.desc())
            .limit(limit)
        )
        return [
            RecentOffer(
                id=offer.id,
                title=offer.title,
                total=offer.total,
                status=offer.status,
                client_name=company or name,
                created_at=offer.created_at,
            )
            for offer, company, name in result.all()
        ]

    @classmethod
    async def summary(cls, db: AsyncSession, org_id: str) -> DashboardSummary:
        return DashboardSummary(
            clients_count=await ClientService.count(db, org_id),
            templates_count=await TemplateService.count(db, org_id),
            offers_count=await OfferService.count(db, org_id),
            offers_by_status=await cls.offers_by_status(db, org_id),
            recent_offers=await cls.recent_offers(db, org_id),
        )

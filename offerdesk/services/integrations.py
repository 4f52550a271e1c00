"""
services/integrations.py
------------------------
Narrow contracts for collaborators that live outside this service.

  - RateLimiter: consulted by a route dependency before offer creation,
    offer listing and login. The backend (in-memory, Redis, ...) is
    whatever the deployment puts on app.state.rate_limiter.
  - PdfRenderer: turns an offer and its client into PDF bytes. The
    payload handed over is built here, tenant-scoped, so a renderer never
    touches the database.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.models.offer import Offer
from offerdesk.services.client_service import ClientService
from offerdesk.services.offer_service import OfferService


@dataclass(frozen=True)
class RateLimitResult:
    ok: bool
    retry_after: int = 0


class RateLimiter(Protocol):
    async def limit_request(self, request: Request, key: str) -> RateLimitResult:
        ...


class PdfRenderer(Protocol):
    def render(self, client: dict[str, Any], offer_fields: dict[str, Any]) -> bytes:
        ...


@dataclass(frozen=True)
class PdfPayload:
    client: dict[str, Any]
    offer_fields: dict[str, Any]


def offer_fields(offer: Offer) -> dict[str, Any]:
    return {
        "id": offer.id,
        "title": offer.title,
        "status": offer.status,
        "items": list(offer.items or []),
        "subtotal": offer.subtotal,
        "tax_rate": offer.tax_rate,
        "tax_amount": offer.tax_amount,
        "total": offer.total,
        "created_at": offer.created_at.isoformat() if offer.created_at else None,
    }


async def build_pdf_payload(
    db: AsyncSession, offer_id: str, org_id: str
) -> PdfPayload:
    """Offer and client of one organisation. Raises NotFound for either."""
    offer = await OfferService.get_by_id(db, offer_id, org_id)
    client = await ClientService.get_by_id(db, offer.client_id, org_id)
    return PdfPayload(
        client={
            "name": client.name,
            "company": client.company,
            "email": client.email,
            "phone": client.phone,
        },
        offer_fields=offer_fields(offer),
    )

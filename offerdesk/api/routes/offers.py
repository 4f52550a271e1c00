"""
api/routes/offers.py
--------------------
Offer endpoints.

GET    /offers              - Paginated list (rate limited)
POST   /offers              - Create a draft offer (rate limited)
GET    /offers/{id}         - Fetch one offer
PATCH  /offers/{id}         - Edit a draft offer's content
POST   /offers/{id}/status  - Move through the lifecycle (admin)
GET    /offers/{id}/pdf     - Render the offer as PDF
DELETE /offers/{id}         - Delete (admin)

Totals are always computed server-side; they cannot be sent.
"""

from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from starlette.concurrency import run_in_threadpool

from offerdesk.dependencies import (
    AdminPrincipal,
    DbSession,
    SessionPrincipal,
    get_pdf_renderer,
    rate_limited,
)
from offerdesk.models.offer import OfferStatus
from offerdesk.schemas.offer import (
    OfferCreate,
    OfferListResponse,
    OfferRead,
    OfferStatusChange,
    OfferUpdate,
)
from offerdesk.services.integrations import PdfRenderer, build_pdf_payload
from offerdesk.services.offer_service import OfferService

router = APIRouter(prefix="/offers", tags=["Offers"])


def _changes(body: OfferUpdate) -> dict[str, Any]:
    """Only the fields the caller sent; explicit nulls are kept."""
    changes: dict[str, Any] = {}
    for name in body.model_fields_set:
        value = getattr(body, name)
        if name == "items" and value is not None:
            value = [item.model_dump() for item in value]
        changes[name] = value
    return changes


@router.get(
    "",
    response_model=OfferListResponse,
    summary="List offers (paginated)",
    dependencies=[Depends(rate_limited("offers:list"))],
)
async def list_offers(
    db: DbSession,
    principal: SessionPrincipal,
    skip: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=20, ge=1, le=100, description="Results per page"),
    status_filter: Annotated[Optional[OfferStatus], Query(alias="status")] = None,
    client_id: Optional[str] = Query(default=None),
) -> OfferListResponse:
    total, offers = await OfferService.list_offers(
        db,
        principal.org_id,
        skip=skip,
        limit=limit,
        status=status_filter,
        client_id=client_id,
    )
    return OfferListResponse(
        total=total,
        items=[OfferRead.model_validate(o) for o in offers],
    )


@router.post(
    "",
    response_model=OfferRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft offer",
    dependencies=[Depends(rate_limited("offers:create"))],
)
async def create_offer(
    body: OfferCreate,
    db: DbSession,
    principal: SessionPrincipal,
) -> OfferRead:
    offer = await OfferService.create(db, principal.org_id, body.model_dump())
    return OfferRead.model_validate(offer)


@router.get("/{offer_id}", response_model=OfferRead, summary="Get an offer")
async def get_offer(
    offer_id: str,
    db: DbSession,
    principal: SessionPrincipal,
) -> OfferRead:
    offer = await OfferService.get_by_id(db, offer_id, principal.org_id)
    return OfferRead.model_validate(offer)


@router.patch("/{offer_id}", response_model=OfferRead, summary="Edit a draft offer")
async def update_offer(
    offer_id: str,
    body: OfferUpdate,
    db: DbSession,
    principal: SessionPrincipal,
) -> OfferRead:
    """Refused with 409 once the offer has been sent."""
    offer = await OfferService.update(db, offer_id, principal.org_id, _changes(body))
    return OfferRead.model_validate(offer)


@router.post(
    "/{offer_id}/status",
    response_model=OfferRead,
    summary="Admin: change the offer status",
)
async def change_offer_status(
    offer_id: str,
    body: OfferStatusChange,
    db: DbSession,
    principal: AdminPrincipal,
) -> OfferRead:
    """draft → sent, then sent → accepted | rejected. Anything else is 409."""
    offer = await OfferService.change_status(
        db, offer_id, principal.org_id, body.status, principal
    )
    return OfferRead.model_validate(offer)


@router.get(
    "/{offer_id}/pdf",
    response_class=Response,
    summary="Download the offer as PDF",
)
async def offer_pdf(
    offer_id: str,
    db: DbSession,
    principal: SessionPrincipal,
    renderer: Annotated[PdfRenderer, Depends(get_pdf_renderer)],
) -> Response:
    payload = await build_pdf_payload(db, offer_id, principal.org_id)
    content = await run_in_threadpool(renderer.render, payload.client, payload.offer_fields)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="offer-{offer_id}.pdf"'},
    )


@router.delete(
    "/{offer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Admin: delete an offer",
)
async def delete_offer(
    offer_id: str,
    db: DbSession,
    principal: AdminPrincipal,
) -> None:
    await OfferService.delete(db, offer_id, principal.org_id)

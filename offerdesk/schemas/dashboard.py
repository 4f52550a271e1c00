"""
schemas/dashboard.py
--------------------
Dashboard summary response.
"""

from datetime import datetime

from pydantic import BaseModel

from offerdesk.models.offer import OfferStatus


class RecentOffer(BaseModel):
    id: str
    title: str
    total: int
    status: OfferStatus
    client_name: str
    created_at: datetime


class DashboardSummary(BaseModel):
    clients_count: int
    templates_count: int
    offers_count: int
    offers_by_status: dict[str, int]
    recent_offers: list[RecentOffer]

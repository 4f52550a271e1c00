"""
api/routes/dashboard.py
-----------------------
GET /dashboard/summary - Counters and the five latest offers.
"""

from fastapi import APIRouter

from offerdesk.dependencies import DbSession, SessionPrincipal
from offerdesk.schemas.dashboard import DashboardSummary
from offerdesk.services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummary, summary="Organisation summary")
async def dashboard_summary(db: DbSession, principal: SessionPrincipal) -> DashboardSummary:
    return await DashboardService.summary(db, principal.org_id)

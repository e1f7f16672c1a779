"""
Dashboard API Routes (v1)

Endpoints:
    GET /dashboard/stats - Totals and recent delivery activity
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from campaign_engine.api.dependencies import get_stats_service
from campaign_engine.core.services.stats_service import StatsService


router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


class DashboardStatsResponse(BaseModel):
    totalCustomers: int
    totalOrders: int
    totalCampaigns: int
    recentActivity: int


@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(service: StatsService = Depends(get_stats_service)):
    """Totals, plus delivery records created in the last 7 days"""
    return DashboardStatsResponse(**await service.dashboard())

"""Dashboard API endpoints - stats, charts and trends for the admin home page."""
from typing import Optional

from fastapi import APIRouter, Query

from app.api.deps import Metrics
from app.schemas.dashboard import DashboardResponse, TrendResponse


router = APIRouter()


# ==================== Overview ====================
@router.get("", response_model=DashboardResponse)
async def get_dashboard(metrics: Metrics):
    """
    Get dashboard payload.
    Returns headline stats, chart breakdowns, top manufacturers and recent activity.
    """
    return await metrics.dashboard()


# ==================== Trends ====================
@router.get("/trends", response_model=TrendResponse)
async def get_trends(
    metrics: Metrics,
    days: Optional[int] = Query(None, ge=1, le=90),
):
    """Daily fulfillment and order-volume series, one point per local day."""
    days = days or metrics.settings.TREND_DAYS
    trends = await metrics.trends(days)
    return TrendResponse(days=days, **trends)

from pydantic import BaseModel
from typing import List
import uuid

from app.schemas.manufacturer import ManufacturerResponse, StatusCount
from app.schemas.logs import ActivityLogResponse
from app.schemas.order import OrderResponse, PortalOrderResponse


class DashboardStats(BaseModel):
    total_orders: int
    pending_orders: int
    active_alerts: int
    avg_fulfillment_days: float
    on_time_rate: int


class FulfillmentPoint(BaseModel):
    date: str  # MM/DD
    avg_days: float


class VolumePoint(BaseModel):
    date: str  # MM/DD
    orders: int


class DashboardCharts(BaseModel):
    orders_by_source: List[StatusCount] = []
    orders_by_status: List[StatusCount] = []
    fulfillment_trend: List[FulfillmentPoint] = []
    order_volume: List[VolumePoint] = []


class DashboardResponse(BaseModel):
    """Admin dashboard payload."""
    stats: DashboardStats
    charts: DashboardCharts
    top_manufacturers: List[ManufacturerResponse] = []
    recent_activity: List[ActivityLogResponse] = []


class TrendResponse(BaseModel):
    days: int
    fulfillment_trend: List[FulfillmentPoint]
    order_volume: List[VolumePoint]


class PortalSummaryResponse(BaseModel):
    """Manufacturer portal landing view."""
    manufacturer_id: uuid.UUID
    manufacturer_name: str
    pending_count: int
    total_orders: int
    shipped_today: int
    avg_response_hours: float
    pending_orders: List[PortalOrderResponse] = []
    recently_shipped: List[OrderResponse] = []

"""
Manufacturer Portal API Endpoints

Simplified views for a manufacturer to:
- See pending orders with urgency (oldest assignment first)
- Track today's output and average response time
- Mark their own orders shipped

Orders belonging to another manufacturer are reported as not found.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter

from app.api.deps import Lifecycle, Metrics
from app.schemas.dashboard import PortalSummaryResponse
from app.schemas.order import OrderResponse, OrderDetailResponse, PortalOrderResponse, ShipRequest

router = APIRouter()


def _build_portal_order(row: dict) -> PortalOrderResponse:
    response = PortalOrderResponse.model_validate(row["order"])
    response.urgency = row["urgency"].value if row["urgency"] else None
    response.hours_since_assigned = row["hours_since_assigned"]
    return response


# ==================== Dashboard ====================

@router.get("/manufacturers/{manufacturer_id}/summary", response_model=PortalSummaryResponse)
async def get_portal_summary(manufacturer_id: UUID, metrics: Metrics):
    """
    Get manufacturer portal summary.

    Returns pending orders with urgency, shipped-today count, response time
    and the most recent shipments.
    """
    summary = await metrics.portal_summary(manufacturer_id)
    manufacturer = summary["manufacturer"]
    return PortalSummaryResponse(
        manufacturer_id=manufacturer.id,
        manufacturer_name=manufacturer.name,
        pending_count=summary["pending_count"],
        total_orders=summary["total_orders"],
        shipped_today=summary["shipped_today"],
        avg_response_hours=summary["avg_response_hours"],
        pending_orders=[_build_portal_order(row) for row in summary["pending_orders"]],
        recently_shipped=[OrderResponse.model_validate(o) for o in summary["recently_shipped"]],
    )


# ==================== Orders ====================

@router.get("/manufacturers/{manufacturer_id}/orders", response_model=List[PortalOrderResponse])
async def list_portal_orders(manufacturer_id: UUID, metrics: Metrics):
    """Open orders (assigned, notified, delayed) for the manufacturer, oldest assignment first."""
    return [_build_portal_order(row) for row in await metrics.portal_orders(manufacturer_id)]


@router.post(
    "/manufacturers/{manufacturer_id}/orders/{order_id}/ship",
    response_model=OrderDetailResponse,
)
async def ship_portal_order(
    manufacturer_id: UUID,
    order_id: UUID,
    data: ShipRequest,
    service: Lifecycle,
):
    """Mark one of the manufacturer's orders shipped."""
    order = await service.ship(
        order_id,
        carrier=data.carrier,
        tracking_number=data.tracking_number,
        performed_by=data.performed_by,
        manufacturer_id=manufacturer_id,
    )
    return OrderDetailResponse.model_validate(order)

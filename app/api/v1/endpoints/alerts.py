from typing import Optional
import uuid

from fastapi import APIRouter, status, Query, Body

from app.api.deps import Alerts
from app.models.alert import AlertType, AlertSeverity
from app.schemas.base import page_count
from app.schemas.alert import (
    AlertCreate,
    AlertResolveRequest,
    AlertResponse,
    AlertListResponse,
    AlertSummary,
    AlertScanResponse,
)


router = APIRouter()


@router.get("", response_model=AlertListResponse)
async def list_alerts(
    service: Alerts,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    resolved: Optional[bool] = Query(None),
    severity: Optional[AlertSeverity] = Query(None),
    type: Optional[AlertType] = Query(None),
    order_id: Optional[uuid.UUID] = Query(None),
    manufacturer_id: Optional[uuid.UUID] = Query(None),
):
    """List alerts, most severe first then newest first."""
    skip = (page - 1) * size
    alerts, total = await service.list_alerts(
        resolved=resolved,
        severity=severity.value if severity else None,
        alert_type=type.value if type else None,
        order_id=order_id,
        manufacturer_id=manufacturer_id,
        skip=skip,
        limit=size,
    )
    return AlertListResponse(
        items=[AlertResponse.model_validate(a) for a in alerts],
        total=total,
        page=page,
        size=size,
        pages=page_count(total, size),
    )


@router.get("/summary", response_model=AlertSummary)
async def get_alert_summary(service: Alerts):
    """Alert counts for the alerts page header."""
    return await service.alert_counts()


@router.post("", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
async def create_alert(data: AlertCreate, service: Alerts):
    """Raise an alert by hand."""
    return await service.create_alert(
        alert_type=data.type,
        severity=data.severity,
        title=data.title,
        message=data.message,
        order_id=data.order_id,
        manufacturer_id=data.manufacturer_id,
        performed_by=data.performed_by,
    )


@router.post("/scan", response_model=AlertScanResponse)
async def run_alert_scan(service: Alerts):
    """Run the overdue / delay policy scan now."""
    created = await service.scan()
    return AlertScanResponse(
        created=len(created),
        alerts=[AlertResponse.model_validate(a) for a in created],
    )


@router.post("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: uuid.UUID,
    service: Alerts,
    data: Optional[AlertResolveRequest] = Body(None),
):
    """Resolve an alert. Resolving twice is a no-op."""
    resolved_by = data.resolved_by if data else None
    return await service.resolve_alert(alert_id, resolved_by=resolved_by)

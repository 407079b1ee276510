from typing import Optional, Tuple
import re
import uuid
from datetime import date, datetime, tzinfo

from fastapi import APIRouter, status, Query, Body
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from app.api.deps import Lifecycle, Metrics, Store, ClockDep
from app.core.errors import ValidationError
from app.db_types import as_utc
from app.models.order import OrderStatus, OrderSource
from app.schemas.alert import AlertResponse
from app.schemas.base import page_count
from app.schemas.order import (
    OrderCreate,
    OrderResponse,
    OrderDetailResponse,
    OrderListResponse,
    OrderAlertResponse,
    TransitionRequest,
    AssignRequest,
    ShipRequest,
)
from app.services.metrics_service import MetricsService, local_day_bounds


router = APIRouter()

DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_datetime_adapter = TypeAdapter(datetime)


def _build_order_response(order, metrics: MetricsService, now: datetime) -> OrderResponse:
    """Build OrderResponse with the read-time urgency class."""
    response = OrderResponse.model_validate(order)
    urgency = metrics.urgency(order, now)
    response.urgency = urgency.value if urgency else None
    return response


def _build_order_detail_response(order, metrics: MetricsService, now: datetime) -> OrderDetailResponse:
    """Build OrderDetailResponse (alerts, emails, activity) from a fully loaded Order."""
    response = OrderDetailResponse.model_validate(order)
    urgency = metrics.urgency(order, now)
    response.urgency = urgency.value if urgency else None
    return response


def _parse_date_bound(value: Optional[str], field: str, tz: tzinfo) -> Tuple[Optional[datetime], Optional[date]]:
    """
    Read a date filter as either a full timestamp or a bare calendar date.

    Naive timestamps are wall time in the business timezone. A bare date is
    returned separately so the caller can expand it to that local day.
    """
    if not value:
        return None, None
    value = value.strip()
    try:
        if DATE_ONLY.match(value):
            return None, date.fromisoformat(value)
        return as_utc(_datetime_adapter.validate_python(value), assume=tz), None
    except (ValueError, PydanticValidationError):
        raise ValidationError(f"{field.replace('_', ' ')} is not a valid date or datetime", field=field)


def _transition_body(body: Optional[TransitionRequest]) -> TransitionRequest:
    return body or TransitionRequest()


@router.get("", response_model=OrderListResponse)
async def list_orders(
    store: Store,
    metrics: Metrics,
    clock: ClockDep,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    source: Optional[OrderSource] = Query(None),
    manufacturer_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, description="Order number, customer name or email"),
    date_from: Optional[str] = Query(None, description="ISO datetime or YYYY-MM-DD (start of that day)"),
    date_to: Optional[str] = Query(None, description="ISO datetime or YYYY-MM-DD (through the end of that day)"),
):
    """Get paginated list of orders, newest first."""
    created_from, day_from = _parse_date_bound(date_from, "date_from", metrics.tz)
    created_to, day_to = _parse_date_bound(date_to, "date_to", metrics.tz)
    created_before = None
    if day_from:
        created_from, _ = local_day_bounds(day_from, metrics.tz)
    if day_to:
        _, created_before = local_day_bounds(day_to, metrics.tz)

    skip = (page - 1) * size
    orders, total = await store.list_orders(
        status=status.value if status else None,
        source=source.value if source else None,
        manufacturer_id=manufacturer_id,
        search=search,
        date_from=created_from,
        date_to=created_to,
        created_before=created_before,
        skip=skip,
        limit=size,
    )

    now = clock()
    return OrderListResponse(
        items=[_build_order_response(o, metrics, now) for o in orders],
        total=total,
        page=page,
        size=size,
        pages=page_count(total, size),
    )


@router.post(
    "",
    response_model=OrderDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(data: OrderCreate, service: Lifecycle, metrics: Metrics, clock: ClockDep):
    """Take in a new order (status RECEIVED)."""
    order = await service.create_order(data, performed_by=data.performed_by)
    return _build_order_detail_response(order, metrics, clock())


@router.get("/by-number/{order_number}", response_model=OrderDetailResponse)
async def get_order_by_number(order_number: str, store: Store, metrics: Metrics, clock: ClockDep):
    """Get order by order number."""
    order = await store.get_order_by_number(order_number)
    return _build_order_detail_response(order, metrics, clock())


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: uuid.UUID, service: Lifecycle, metrics: Metrics, clock: ClockDep):
    """Get order with its alerts, emails and activity."""
    order = await service.get_order(order_id)
    return _build_order_detail_response(order, metrics, clock())


# ==================== Lifecycle transitions ====================

@router.post("/{order_id}/assign", response_model=OrderDetailResponse)
async def assign_order(
    order_id: uuid.UUID,
    data: AssignRequest,
    service: Lifecycle,
    metrics: Metrics,
    clock: ClockDep,
):
    """Assign a RECEIVED order to an active manufacturer."""
    order = await service.assign(order_id, data.manufacturer_id, performed_by=data.performed_by)
    return _build_order_detail_response(order, metrics, clock())


@router.post("/{order_id}/notify", response_model=OrderDetailResponse)
async def notify_manufacturer(
    order_id: uuid.UUID,
    service: Lifecycle,
    metrics: Metrics,
    clock: ClockDep,
    data: Optional[TransitionRequest] = Body(None),
):
    """Send the order confirmation to the assigned manufacturer."""
    data = _transition_body(data)
    order = await service.notify(order_id, performed_by=data.performed_by)
    return _build_order_detail_response(order, metrics, clock())


@router.post("/{order_id}/ship", response_model=OrderDetailResponse)
async def ship_order(
    order_id: uuid.UUID,
    data: ShipRequest,
    service: Lifecycle,
    metrics: Metrics,
    clock: ClockDep,
):
    """Mark an order shipped with carrier and tracking number."""
    order = await service.ship(
        order_id,
        carrier=data.carrier,
        tracking_number=data.tracking_number,
        performed_by=data.performed_by,
    )
    return _build_order_detail_response(order, metrics, clock())


@router.post("/{order_id}/deliver", response_model=OrderDetailResponse)
async def deliver_order(
    order_id: uuid.UUID,
    service: Lifecycle,
    metrics: Metrics,
    clock: ClockDep,
    data: Optional[TransitionRequest] = Body(None),
):
    """Confirm delivery of a shipped order."""
    data = _transition_body(data)
    order = await service.deliver(order_id, performed_by=data.performed_by)
    return _build_order_detail_response(order, metrics, clock())


@router.post("/{order_id}/delay", response_model=OrderAlertResponse)
async def mark_order_delayed(
    order_id: uuid.UUID,
    service: Lifecycle,
    metrics: Metrics,
    clock: ClockDep,
    data: Optional[TransitionRequest] = Body(None),
):
    """Flag an assigned or notified order as delayed (raises a DELAY alert)."""
    data = _transition_body(data)
    order, alert = await service.mark_delayed(order_id, performed_by=data.performed_by)
    return OrderAlertResponse(
        order=_build_order_response(order, metrics, clock()),
        alert=AlertResponse.model_validate(alert),
    )


@router.post(
    "/{order_id}/escalate",
    response_model=OrderAlertResponse,
    status_code=status.HTTP_201_CREATED,
)
async def escalate_order(
    order_id: uuid.UUID,
    service: Lifecycle,
    metrics: Metrics,
    clock: ClockDep,
    data: Optional[TransitionRequest] = Body(None),
):
    """Raise a CRITICAL escalation alert; the order status is unchanged."""
    data = _transition_body(data)
    order, alert = await service.escalate(order_id, performed_by=data.performed_by)
    return OrderAlertResponse(
        order=_build_order_response(order, metrics, clock()),
        alert=AlertResponse.model_validate(alert),
    )


@router.post("/{order_id}/cancel", response_model=OrderDetailResponse)
async def cancel_order(
    order_id: uuid.UUID,
    service: Lifecycle,
    metrics: Metrics,
    clock: ClockDep,
    data: Optional[TransitionRequest] = Body(None),
):
    """Cancel an open order."""
    data = _transition_body(data)
    order = await service.cancel(order_id, performed_by=data.performed_by)
    return _build_order_detail_response(order, metrics, clock())

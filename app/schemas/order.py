from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from app.models.order import OrderSource, OrderPriority
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, PaginatedResponse
from app.schemas.manufacturer import ManufacturerBrief, ProductBrief
from app.schemas.alert import AlertResponse
from app.schemas.logs import EmailLogResponse, ActivityLogResponse


# ==================== ORDER INTAKE ====================

class OrderCreate(BaseCreateSchema):
    """Order intake schema. Quantity and price rules are enforced by the service."""
    customer_name: str
    customer_email: EmailStr
    customer_phone: str = ""
    shipping_address: str = ""
    product_id: uuid.UUID
    quantity: int
    total_price: Optional[Decimal] = None  # Defaults to quantity x product price
    source: OrderSource = OrderSource.WEBSITE
    priority: OrderPriority = OrderPriority.NORMAL
    estimated_ship: Optional[datetime] = None
    notes: Optional[str] = None
    performed_by: Optional[str] = None


# ==================== TRANSITION REQUESTS ====================

class TransitionRequest(BaseCreateSchema):
    """Body accepted by notify / deliver / delay / escalate / cancel."""
    performed_by: Optional[str] = None


class AssignRequest(TransitionRequest):
    manufacturer_id: uuid.UUID


class ShipRequest(TransitionRequest):
    """Carrier and tracking number are checked by the service, not the schema."""
    carrier: str = ""
    tracking_number: str = ""


# ==================== RESPONSES ====================

class OrderResponse(BaseResponseSchema):
    """Order response schema."""
    id: uuid.UUID
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    shipping_address: str
    quantity: int
    total_price: Decimal
    source: str
    priority: str
    status: str
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    product_id: uuid.UUID
    manufacturer_id: Optional[uuid.UUID] = None
    product: Optional[ProductBrief] = None
    manufacturer: Optional[ManufacturerBrief] = None
    created_at: datetime
    assigned_at: Optional[datetime] = None
    notified_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    estimated_ship: Optional[datetime] = None
    updated_at: datetime
    version_id: int

    # Read-time urgency for ASSIGNED / NOTIFIED / DELAYED orders
    urgency: Optional[str] = None


class OrderDetailResponse(OrderResponse):
    """Order with its alerts, emails and activity (newest first)."""
    alerts: List[AlertResponse] = []
    email_logs: List[EmailLogResponse] = []
    activity_logs: List[ActivityLogResponse] = []


class OrderListResponse(PaginatedResponse[OrderResponse]):
    """Paginated order list."""
    pass


class OrderAlertResponse(BaseModel):
    """Result of delay / escalate: the order plus the alert the transition raised."""
    order: OrderResponse
    alert: AlertResponse


class PortalOrderResponse(OrderResponse):
    hours_since_assigned: float = Field(0.0, description="Hours since assignment")

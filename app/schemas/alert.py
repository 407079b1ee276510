from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid

from app.models.alert import AlertType, AlertSeverity
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, PaginatedResponse


class AlertCreate(BaseCreateSchema):
    """Manual alert (quality issue, stock problem, ...)."""
    type: AlertType
    severity: AlertSeverity
    title: str = Field(..., max_length=255)
    message: str
    order_id: Optional[uuid.UUID] = None
    manufacturer_id: Optional[uuid.UUID] = None
    performed_by: Optional[str] = None


class AlertResolveRequest(BaseCreateSchema):
    resolved_by: Optional[str] = None


class AlertResponse(BaseResponseSchema):
    """Alert response schema."""
    id: uuid.UUID
    type: str
    severity: str
    title: str
    message: str
    order_id: Optional[uuid.UUID] = None
    manufacturer_id: Optional[uuid.UUID] = None
    resolved: bool
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    created_at: datetime


class AlertListResponse(PaginatedResponse[AlertResponse]):
    """Paginated alert list, most severe first."""
    pass


class AlertSummary(BaseModel):
    total: int
    active: int
    critical: int
    high: int
    resolved: int


class AlertScanResponse(BaseModel):
    created: int
    alerts: List[AlertResponse] = []

from typing import Optional
from datetime import datetime
import uuid

from app.schemas.base import BaseResponseSchema, PaginatedResponse


class EmailLogResponse(BaseResponseSchema):
    """Recorded outbound email."""
    id: uuid.UUID
    type: str
    subject: str
    body: str
    recipient: str
    status: str
    order_id: Optional[uuid.UUID] = None
    manufacturer_id: Optional[uuid.UUID] = None
    created_at: datetime


class ActivityLogResponse(BaseResponseSchema):
    """Audit trail entry."""
    id: uuid.UUID
    action: str
    details: str
    order_id: Optional[uuid.UUID] = None
    performed_by: Optional[str] = None
    created_at: datetime


class EmailLogListResponse(PaginatedResponse[EmailLogResponse]):
    pass


class ActivityLogListResponse(PaginatedResponse[ActivityLogResponse]):
    pass

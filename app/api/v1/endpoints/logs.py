"""Email and activity log viewers (read-only)."""
from typing import Optional
import uuid

from fastapi import APIRouter, Query

from app.api.deps import Store, Audit
from app.models.email_log import EmailType
from app.models.activity_log import ActivityAction
from app.schemas.base import page_count
from app.schemas.logs import (
    EmailLogResponse,
    ActivityLogResponse,
    EmailLogListResponse,
    ActivityLogListResponse,
)


router = APIRouter()


@router.get("/emails", response_model=EmailLogListResponse)
async def list_email_logs(
    store: Store,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    type: Optional[EmailType] = Query(None),
    order_id: Optional[uuid.UUID] = Query(None),
    manufacturer_id: Optional[uuid.UUID] = Query(None),
):
    """Recorded outbound emails, newest first."""
    skip = (page - 1) * size
    emails, total = await store.list_email_logs(
        email_type=type.value if type else None,
        order_id=order_id,
        manufacturer_id=manufacturer_id,
        skip=skip,
        limit=size,
    )
    return EmailLogListResponse(
        items=[EmailLogResponse.model_validate(e) for e in emails],
        total=total,
        page=page,
        size=size,
        pages=page_count(total, size),
    )


@router.get("/activity-logs", response_model=ActivityLogListResponse)
async def list_activity_logs(
    audit: Audit,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    order_id: Optional[uuid.UUID] = Query(None),
    action: Optional[ActivityAction] = Query(None),
):
    """Audit trail, newest first."""
    skip = (page - 1) * size
    entries, total = await audit.list_activity(
        order_id=order_id,
        action=action.value if action else None,
        skip=skip,
        limit=size,
    )
    return ActivityLogListResponse(
        items=[ActivityLogResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        size=size,
        pages=page_count(total, size),
    )

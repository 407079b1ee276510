import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, UTCDateTime, utc_now

if TYPE_CHECKING:
    from app.models.order import Order


class ActivityAction(str, Enum):
    """Action tags written to the activity log."""
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_ASSIGNED = "ORDER_ASSIGNED"
    ORDER_NOTIFIED = "ORDER_NOTIFIED"
    ORDER_SHIPPED = "ORDER_SHIPPED"
    ORDER_DELIVERED = "ORDER_DELIVERED"
    ORDER_DELAYED = "ORDER_DELAYED"
    ORDER_ESCALATED = "ORDER_ESCALATED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ALERT_CREATED = "ALERT_CREATED"
    ALERT_RESOLVED = "ALERT_RESOLVED"


class ActivityLog(Base):
    """
    Audit trail entry. Append-only; one per lifecycle transition.
    """
    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    details: Mapped[str] = mapped_column(Text, nullable=False)

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    # Who performed the action (user name / email), if known
    performed_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        nullable=False,
        index=True
    )

    order: Mapped[Optional["Order"]] = relationship("Order", back_populates="activity_logs")

    def __repr__(self) -> str:
        return f"<ActivityLog(action='{self.action}', order_id='{self.order_id}')>"

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
    from app.models.manufacturer import Manufacturer


class EmailType(str, Enum):
    """Kinds of outbound email recorded by the notification sink."""
    ORDER_CONFIRMATION = "ORDER_CONFIRMATION"
    SHIPPING_NOTIFICATION = "SHIPPING_NOTIFICATION"
    DELAY_ALERT = "DELAY_ALERT"
    REMINDER = "REMINDER"
    ESCALATION = "ESCALATION"


class EmailStatus(str, Enum):
    SENT = "SENT"
    FAILED = "FAILED"


class EmailLog(Base):
    """
    Append-only record of an email handed to the notification sink.
    Actual transport happens outside this service.
    """
    __tablename__ = "email_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True,
        comment="ORDER_CONFIRMATION, SHIPPING_NOTIFICATION, DELAY_ALERT, REMINDER, ESCALATION"
    )
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=EmailStatus.SENT.value,
        nullable=False
    )

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    manufacturer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("manufacturers.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        nullable=False,
        index=True
    )

    order: Mapped[Optional["Order"]] = relationship("Order", back_populates="email_logs")
    manufacturer: Mapped[Optional["Manufacturer"]] = relationship("Manufacturer")

    def __repr__(self) -> str:
        return f"<EmailLog(type='{self.type}', recipient='{self.recipient}')>"

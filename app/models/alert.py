"""Alert model: flagged exception conditions needing human attention."""
import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, UTCDateTime, utc_now

if TYPE_CHECKING:
    from app.models.order import Order
    from app.models.manufacturer import Manufacturer


class AlertType(str, Enum):
    """Alert type."""
    DELAY = "DELAY"
    OVERDUE = "OVERDUE"
    QUALITY = "QUALITY"
    STOCK = "STOCK"
    ESCALATION = "ESCALATION"


class AlertSeverity(str, Enum):
    """Alert severity, most severe first."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# Total order used for every alert listing: CRITICAL < HIGH < MEDIUM < LOW
SEVERITY_RANK = {
    AlertSeverity.CRITICAL.value: 0,
    AlertSeverity.HIGH.value: 1,
    AlertSeverity.MEDIUM.value: 2,
    AlertSeverity.LOW.value: 3,
}


class Alert(Base):
    """
    Alert raised by a lifecycle transition, the policy scan, or manually.
    Severity is fixed at creation; the only mutation is a one-way resolve.
    """
    __tablename__ = "alerts"
    __table_args__ = (
        Index('ix_alert_resolved_severity', 'resolved', 'severity'),
        Index('ix_alert_order_type', 'order_id', 'type'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="DELAY, OVERDUE, QUALITY, STOCK, ESCALATION"
    )
    severity: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="CRITICAL, HIGH, MEDIUM, LOW"
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=True
    )
    manufacturer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("manufacturers.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Resolution
    resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        nullable=False,
        index=True
    )

    # Relationships
    order: Mapped[Optional["Order"]] = relationship("Order", back_populates="alerts")
    manufacturer: Mapped[Optional["Manufacturer"]] = relationship("Manufacturer")

    @property
    def severity_rank(self) -> int:
        return SEVERITY_RANK.get(self.severity, len(SEVERITY_RANK))

    def __repr__(self) -> str:
        return f"<Alert(type='{self.type}', severity='{self.severity}', resolved={self.resolved})>"

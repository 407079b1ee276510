import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, ForeignKey, Integer, Text, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, UTCDateTime, utc_now

if TYPE_CHECKING:
    from app.models.product import Product
    from app.models.manufacturer import Manufacturer
    from app.models.alert import Alert
    from app.models.email_log import EmailLog
    from app.models.activity_log import ActivityLog


class OrderStatus(str, Enum):
    """Order status enumeration - manufacturer fulfillment flow."""
    RECEIVED = "RECEIVED"      # Order taken in, no manufacturer yet
    ASSIGNED = "ASSIGNED"      # Bound to a manufacturer
    NOTIFIED = "NOTIFIED"      # Manufacturer sent the order confirmation
    SHIPPED = "SHIPPED"        # Handed to a carrier
    DELIVERED = "DELIVERED"    # Terminal
    CANCELLED = "CANCELLED"    # Terminal
    DELAYED = "DELAYED"        # Flagged late; can still ship


class OrderSource(str, Enum):
    """Order source/channel."""
    AMAZON = "AMAZON"
    WEBSITE = "WEBSITE"
    WAYFAIR = "WAYFAIR"
    HOME_DEPOT = "HOME_DEPOT"


class OrderPriority(str, Enum):
    """Order priority."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


# Sort rank, most urgent first
PRIORITY_RANK = {
    OrderPriority.URGENT.value: 0,
    OrderPriority.HIGH.value: 1,
    OrderPriority.NORMAL.value: 2,
    OrderPriority.LOW.value: 3,
}


class Order(Base):
    """
    Order model for manufacturer fulfillment.
    Tracks an order from intake to delivery; never deleted.
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index('ix_order_status_created', 'status', 'created_at'),
        Index('ix_order_manufacturer_status', 'manufacturer_id', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    # Order Identification
    order_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="FI-YYMM-NNNN"
    )

    # Customer
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    shipping_address: Mapped[str] = mapped_column(Text, default="", nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    source: Mapped[str] = mapped_column(
        String(30),
        default=OrderSource.WEBSITE.value,
        nullable=False,
        index=True,
        comment="AMAZON, WEBSITE, WAYFAIR, HOME_DEPOT"
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        default=OrderPriority.NORMAL.value,
        nullable=False,
        comment="LOW, NORMAL, HIGH, URGENT"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=OrderStatus.RECEIVED.value,
        nullable=False,
        index=True,
        comment="RECEIVED, ASSIGNED, NOTIFIED, SHIPPED, DELIVERED, CANCELLED, DELAYED"
    )

    # Shipping (set by ship)
    carrier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # References
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    manufacturer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("manufacturers.id", ondelete="RESTRICT"),
        nullable=True,
        comment="Set by assign"
    )

    # Lifecycle timestamps (each set once, in lifecycle order)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        nullable=False
    )
    assigned_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    notified_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, index=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, index=True)
    estimated_ship: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    # Optimistic concurrency; a stale UPDATE raises StaleDataError
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    # Relationships
    product: Mapped["Product"] = relationship("Product")
    manufacturer: Mapped[Optional["Manufacturer"]] = relationship(
        "Manufacturer",
        back_populates="orders"
    )
    alerts: Mapped[List["Alert"]] = relationship(
        "Alert",
        back_populates="order",
        order_by="Alert.created_at.desc()"
    )
    email_logs: Mapped[List["EmailLog"]] = relationship(
        "EmailLog",
        back_populates="order",
        order_by="EmailLog.created_at.desc()"
    )
    activity_logs: Mapped[List["ActivityLog"]] = relationship(
        "ActivityLog",
        back_populates="order",
        order_by="ActivityLog.created_at.desc()"
    )

    def __repr__(self) -> str:
        return f"<Order(order_number='{self.order_number}', status='{self.status}')>"

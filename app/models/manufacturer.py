"""Manufacturer (fulfillment counterparty) model.

Performance columns are a cache of values derived from order history;
they are recomputed by MetricsService.refresh_manufacturer_metrics and are
not part of any create/update payload.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Float, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, UTCDateTime, utc_now

if TYPE_CHECKING:
    from app.models.product import Product
    from app.models.order import Order


class ManufacturerRating(str, Enum):
    """Manufacturer performance rating."""
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class ManufacturerStatus(str, Enum):
    """Manufacturer status enumeration."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Manufacturer(Base):
    """
    Manufacturer master model.
    Owns products and receives assigned orders.
    """
    __tablename__ = "manufacturers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Contact
    contact_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    rating: Mapped[str] = mapped_column(
        String(20),
        default=ManufacturerRating.GOOD.value,
        nullable=False,
        comment="EXCELLENT, GOOD, FAIR, POOR"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ManufacturerStatus.ACTIVE.value,
        nullable=False,
        index=True,
        comment="ACTIVE, INACTIVE"
    )

    # Cached performance (derived from delivered orders)
    avg_fulfillment_days: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    on_time_rate: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Percentage 0-100"
    )
    metrics_refreshed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    # Relationships
    products: Mapped[List["Product"]] = relationship(
        "Product",
        back_populates="manufacturer",
        order_by="Product.name"
    )
    orders: Mapped[List["Order"]] = relationship(
        "Order",
        back_populates="manufacturer"
    )

    @property
    def is_active(self) -> bool:
        return self.status == ManufacturerStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Manufacturer(name='{self.name}', status='{self.status}')>"

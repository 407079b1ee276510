import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import String, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, UTCDateTime, utc_now

if TYPE_CHECKING:
    from app.models.manufacturer import Manufacturer


class ProductCategory(str, Enum):
    """Flooring product category."""
    HARDWOOD = "HARDWOOD"
    LAMINATE = "LAMINATE"
    VINYL = "VINYL"
    TILE = "TILE"
    CARPET = "CARPET"


class Product(Base):
    """
    Catalog item supplied by exactly one manufacturer.
    Attributes are fixed once created.
    """
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    category: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True,
        comment="HARDWOOD, LAMINATE, VINYL, TILE, CARPET"
    )
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    manufacturer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("manufacturers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        nullable=False
    )

    manufacturer: Mapped["Manufacturer"] = relationship(
        "Manufacturer",
        back_populates="products"
    )

    def __repr__(self) -> str:
        return f"<Product(sku='{self.sku}', name='{self.name}')>"

from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from app.models.manufacturer import ManufacturerRating, ManufacturerStatus
from app.models.product import ProductCategory
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


# ==================== MANUFACTURER SCHEMAS ====================

class ManufacturerCreate(BaseCreateSchema):
    """Manufacturer creation schema."""
    name: str = Field(..., min_length=1, max_length=200)
    location: Optional[str] = Field(None, max_length=200)
    contact_name: Optional[str] = Field(None, max_length=200)
    contact_email: EmailStr
    contact_phone: Optional[str] = Field(None, max_length=50)
    rating: ManufacturerRating = ManufacturerRating.GOOD
    status: ManufacturerStatus = ManufacturerStatus.ACTIVE


class ManufacturerUpdate(BaseUpdateSchema):
    """Manufacturer update schema. Cached metrics are not writable."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, max_length=200)
    contact_name: Optional[str] = Field(None, max_length=200)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    rating: Optional[ManufacturerRating] = None
    status: Optional[ManufacturerStatus] = None


class ManufacturerBrief(BaseResponseSchema):
    """Manufacturer summary embedded in orders."""
    id: uuid.UUID
    name: str
    contact_email: str
    status: str


class ManufacturerResponse(BaseResponseSchema):
    """Manufacturer response schema."""
    id: uuid.UUID
    name: str
    location: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: str
    contact_phone: Optional[str] = None
    rating: str  # VARCHAR in DB
    status: str  # VARCHAR in DB
    avg_fulfillment_days: float
    on_time_rate: int
    metrics_refreshed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class StatusCount(BaseModel):
    name: str
    value: int


class ManufacturerPerformance(BaseModel):
    """Live metrics recomputed from the manufacturer's orders."""
    manufacturer_id: uuid.UUID
    name: str
    total_orders: int
    delivered_orders: int
    avg_fulfillment_days: float
    on_time_rate: int
    avg_response_hours: float
    orders_by_status: List[StatusCount] = []


# ==================== PRODUCT SCHEMAS ====================

class ProductCreate(BaseCreateSchema):
    """Product creation schema (manufacturer comes from the URL)."""
    name: str = Field(..., min_length=1, max_length=255)
    sku: str = Field(..., min_length=1, max_length=50)
    category: ProductCategory
    price: Decimal


class ProductBrief(BaseResponseSchema):
    """Product summary embedded in orders."""
    id: uuid.UUID
    name: str
    sku: str
    category: str


class ProductResponse(BaseResponseSchema):
    """Product response schema."""
    id: uuid.UUID
    name: str
    sku: str
    category: str  # VARCHAR in DB
    price: Decimal
    manufacturer_id: uuid.UUID
    created_at: datetime

from typing import Optional, List
import uuid

from fastapi import APIRouter, status, Query

from app.api.deps import Catalog, Metrics
from app.models.manufacturer import ManufacturerStatus
from app.models.product import ProductCategory
from app.schemas.manufacturer import (
    ManufacturerCreate,
    ManufacturerUpdate,
    ManufacturerResponse,
    ManufacturerPerformance,
    ProductCreate,
    ProductResponse,
)


router = APIRouter()


@router.get("", response_model=List[ManufacturerResponse])
async def list_manufacturers(
    service: Catalog,
    status: Optional[ManufacturerStatus] = Query(None),
):
    """List manufacturers by name."""
    return await service.list_manufacturers(status=status.value if status else None)


@router.post(
    "",
    response_model=ManufacturerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_manufacturer(data: ManufacturerCreate, service: Catalog):
    """Create a manufacturer."""
    return await service.create_manufacturer(data)


@router.get("/{manufacturer_id}", response_model=ManufacturerResponse)
async def get_manufacturer(manufacturer_id: uuid.UUID, service: Catalog):
    return await service.get_manufacturer(manufacturer_id)


@router.patch("/{manufacturer_id}", response_model=ManufacturerResponse)
async def update_manufacturer(
    manufacturer_id: uuid.UUID,
    data: ManufacturerUpdate,
    service: Catalog,
):
    """Update contact details, rating or status. Cached metrics are read-only."""
    return await service.update_manufacturer(manufacturer_id, data)


@router.get("/{manufacturer_id}/performance", response_model=ManufacturerPerformance)
async def get_manufacturer_performance(manufacturer_id: uuid.UUID, metrics: Metrics):
    """Live fulfillment metrics recomputed from the manufacturer's orders."""
    return await metrics.manufacturer_performance(manufacturer_id)


# ==================== Products ====================

@router.get("/{manufacturer_id}/products", response_model=List[ProductResponse])
async def list_manufacturer_products(
    manufacturer_id: uuid.UUID,
    service: Catalog,
    category: Optional[ProductCategory] = Query(None),
):
    return await service.list_products(
        manufacturer_id=manufacturer_id,
        category=category.value if category else None,
    )


@router.post(
    "/{manufacturer_id}/products",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(manufacturer_id: uuid.UUID, data: ProductCreate, service: Catalog):
    """Add a product to the manufacturer's catalog."""
    return await service.create_product(manufacturer_id, data)


products_router = APIRouter()


@products_router.get("", response_model=List[ProductResponse])
async def list_products(
    service: Catalog,
    manufacturer_id: Optional[uuid.UUID] = Query(None),
    category: Optional[ProductCategory] = Query(None),
):
    """List the product catalog."""
    return await service.list_products(
        manufacturer_id=manufacturer_id,
        category=category.value if category else None,
    )

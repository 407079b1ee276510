"""Manufacturer and product catalog service."""
import logging
import uuid
from decimal import Decimal
from typing import Optional, List

from app.core.errors import ValidationError
from app.models.manufacturer import Manufacturer
from app.models.product import Product
from app.schemas.manufacturer import ManufacturerCreate, ManufacturerUpdate, ProductCreate
from app.services.order_store import OrderStore


logger = logging.getLogger(__name__)


class ManufacturerService:
    """
    Catalog CRUD. Performance metrics on the manufacturer row are written only
    by MetricsService.refresh_manufacturer_metrics, never through updates here.
    """

    def __init__(self, store: OrderStore):
        self.store = store

    # ==================== MANUFACTURERS ====================

    async def list_manufacturers(self, status: Optional[str] = None) -> List[Manufacturer]:
        return await self.store.list_manufacturers(status=status)

    async def get_manufacturer(self, manufacturer_id: uuid.UUID) -> Manufacturer:
        return await self.store.get_manufacturer(manufacturer_id)

    async def create_manufacturer(self, data: ManufacturerCreate) -> Manufacturer:
        name = data.name.strip()
        if not name:
            raise ValidationError("name is required", field="name")

        manufacturer = Manufacturer(
            id=uuid.uuid4(),
            name=name,
            location=data.location,
            contact_name=data.contact_name,
            contact_email=str(data.contact_email),
            contact_phone=data.contact_phone,
            rating=data.rating.value,
            status=data.status.value,
        )
        self.store.add(manufacturer)
        await self.store.commit(entity="Manufacturer")
        logger.info(f"Manufacturer created: {manufacturer.name}")
        return manufacturer

    async def update_manufacturer(
        self,
        manufacturer_id: uuid.UUID,
        data: ManufacturerUpdate,
    ) -> Manufacturer:
        manufacturer = await self.store.get_manufacturer(manufacturer_id)

        update_data = data.model_dump(exclude_unset=True)
        if "name" in update_data:
            if not (update_data["name"] or "").strip():
                raise ValidationError("name is required", field="name")
            update_data["name"] = update_data["name"].strip()

        for field, value in update_data.items():
            if value is None and field in ("name", "contact_email", "rating", "status"):
                continue
            if hasattr(value, "value"):
                value = value.value
            setattr(manufacturer, field, value)

        await self.store.commit(entity="Manufacturer")
        logger.info(f"Manufacturer updated: {manufacturer.name} ({', '.join(update_data) or 'no changes'})")
        return manufacturer

    # ==================== PRODUCTS ====================

    async def list_products(
        self,
        manufacturer_id: Optional[uuid.UUID] = None,
        category: Optional[str] = None,
    ) -> List[Product]:
        if manufacturer_id:
            await self.store.get_manufacturer(manufacturer_id)
        return await self.store.list_products(manufacturer_id=manufacturer_id, category=category)

    async def create_product(self, manufacturer_id: uuid.UUID, data: ProductCreate) -> Product:
        """Add a product to a manufacturer's catalog. SKUs are unique."""
        name = data.name.strip()
        sku = data.sku.strip().upper()
        if not name:
            raise ValidationError("name is required", field="name")
        if not sku:
            raise ValidationError("sku is required", field="sku")
        if data.price < 0:
            raise ValidationError("price cannot be negative", field="price")

        manufacturer = await self.store.get_manufacturer(manufacturer_id)
        if await self.store.get_product_by_sku(sku):
            raise ValidationError(f"SKU {sku} already exists", field="sku")

        product = Product(
            id=uuid.uuid4(),
            name=name,
            sku=sku,
            category=data.category.value,
            price=Decimal(data.price),
            manufacturer_id=manufacturer.id,
        )
        self.store.add(product)
        await self.store.commit(entity="Product")
        logger.info(f"Product {sku} added for {manufacturer.name}")
        return product

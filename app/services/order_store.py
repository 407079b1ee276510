"""
Order Store

Repository over one AsyncSession. Every lifecycle, metrics and alert
service receives an OrderStore instead of reaching for a global session,
so a request, a background job or a test can each supply their own.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional, List, Tuple, Dict, Iterable

from sqlalchemy import select, func, or_, and_, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import NotFoundError, ConcurrentModificationError
from app.db_types import as_utc
from app.models.order import Order, OrderStatus
from app.models.manufacturer import Manufacturer, ManufacturerStatus
from app.models.product import Product
from app.models.alert import Alert, SEVERITY_RANK
from app.models.email_log import EmailLog
from app.models.activity_log import ActivityLog


logger = logging.getLogger(__name__)


def _order_options(with_children: bool = False) -> list:
    options = [
        selectinload(Order.product),
        selectinload(Order.manufacturer),
    ]
    if with_children:
        options.extend([
            selectinload(Order.alerts),
            selectinload(Order.email_logs),
            selectinload(Order.activity_logs),
        ])
    return options


def severity_order():
    """SQL expression ranking alerts CRITICAL first, unknown severities last."""
    return case(SEVERITY_RANK, value=Alert.severity, else_=len(SEVERITY_RANK))


class OrderStore:
    """Data access for orders, catalog entities, alerts and logs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Orders ====================

    async def get_order(
        self,
        order_id: uuid.UUID,
        for_update: bool = False,
        with_children: bool = False,
    ) -> Order:
        """Load one order with product and manufacturer, or raise NotFoundError."""
        stmt = select(Order).where(Order.id == order_id).options(*_order_options(with_children))
        if for_update:
            # Row lock on PostgreSQL; SQLite ignores FOR UPDATE
            stmt = stmt.with_for_update(of=Order)
        if for_update or with_children:
            stmt = stmt.execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    async def get_order_by_number(self, order_number: str) -> Order:
        stmt = (
            select(Order)
            .where(Order.order_number == order_number)
            .options(*_order_options(with_children=True))
        )
        result = await self.db.execute(stmt)
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order", order_number)
        return order

    async def list_orders(
        self,
        status: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        source: Optional[str] = None,
        manufacturer_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Order], int]:
        """
        Filtered, paginated order listing, newest first.

        date_from and date_to bound created_at inclusively, created_before
        exclusively. Naive bounds are taken as UTC.
        """
        filters = []
        if status:
            filters.append(Order.status == status)
        if statuses:
            filters.append(Order.status.in_(list(statuses)))
        if source:
            filters.append(Order.source == source)
        if manufacturer_id:
            filters.append(Order.manufacturer_id == manufacturer_id)
        if search:
            pattern = f"%{search}%"
            filters.append(or_(
                Order.order_number.ilike(pattern),
                Order.customer_name.ilike(pattern),
                Order.customer_email.ilike(pattern),
            ))
        if date_from:
            filters.append(Order.created_at >= as_utc(date_from))
        if date_to:
            filters.append(Order.created_at <= as_utc(date_to))
        if created_before:
            filters.append(Order.created_at < as_utc(created_before))

        count_stmt = select(func.count(Order.id))
        if filters:
            count_stmt = count_stmt.where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = select(Order).options(*_order_options())
        if filters:
            stmt = stmt.where(and_(*filters))
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def count_orders(
        self,
        statuses: Optional[Iterable[str]] = None,
        manufacturer_id: Optional[uuid.UUID] = None,
    ) -> int:
        stmt = select(func.count(Order.id))
        if statuses:
            stmt = stmt.where(Order.status.in_(list(statuses)))
        if manufacturer_id:
            stmt = stmt.where(Order.manufacturer_id == manufacturer_id)
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_orders_with_number_prefix(self, prefix: str) -> int:
        stmt = select(func.count(Order.id)).where(Order.order_number.like(f"{prefix}%"))
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_orders_by_status(
        self,
        manufacturer_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, int]:
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        if manufacturer_id:
            stmt = stmt.where(Order.manufacturer_id == manufacturer_id)
        result = await self.db.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def count_orders_by_source(self) -> Dict[str, int]:
        stmt = select(Order.source, func.count(Order.id)).group_by(Order.source)
        result = await self.db.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def orders_in_status(
        self,
        statuses: Iterable[str],
        manufacturer_id: Optional[uuid.UUID] = None,
    ) -> List[Order]:
        """Orders in the given statuses, oldest assignment first."""
        stmt = (
            select(Order)
            .where(Order.status.in_(list(statuses)))
            .options(*_order_options())
            .order_by(Order.assigned_at.asc(), Order.created_at.asc())
        )
        if manufacturer_id:
            stmt = stmt.where(Order.manufacturer_id == manufacturer_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def delivered_orders(
        self,
        manufacturer_id: Optional[uuid.UUID] = None,
    ) -> List[Order]:
        stmt = select(Order).where(Order.status == OrderStatus.DELIVERED.value)
        if manufacturer_id:
            stmt = stmt.where(Order.manufacturer_id == manufacturer_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def orders_created_between(self, start: datetime, end: datetime) -> List[Order]:
        stmt = select(Order).where(Order.created_at >= start, Order.created_at <= end)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def orders_delivered_between(self, start: datetime, end: datetime) -> List[Order]:
        stmt = select(Order).where(
            Order.status == OrderStatus.DELIVERED.value,
            Order.delivered_at >= start,
            Order.delivered_at <= end,
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def shipped_orders_for_response_time(
        self,
        manufacturer_id: Optional[uuid.UUID] = None,
        limit: int = 100,
    ) -> List[Order]:
        """Most recently shipped orders having both assigned_at and shipped_at."""
        stmt = select(Order).where(
            Order.shipped_at.is_not(None),
            Order.assigned_at.is_not(None),
        )
        if manufacturer_id:
            stmt = stmt.where(Order.manufacturer_id == manufacturer_id)
        stmt = stmt.order_by(Order.shipped_at.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def recently_shipped(
        self,
        manufacturer_id: uuid.UUID,
        limit: int = 10,
    ) -> List[Order]:
        stmt = (
            select(Order)
            .where(Order.manufacturer_id == manufacturer_id, Order.shipped_at.is_not(None))
            .options(*_order_options())
            .order_by(Order.shipped_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_shipped_between(
        self,
        manufacturer_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> int:
        stmt = select(func.count(Order.id)).where(
            Order.manufacturer_id == manufacturer_id,
            Order.shipped_at >= start,
            Order.shipped_at < end,
        )
        return (await self.db.execute(stmt)).scalar() or 0

    # ==================== Catalog ====================

    async def get_manufacturer(self, manufacturer_id: uuid.UUID) -> Manufacturer:
        result = await self.db.execute(
            select(Manufacturer).where(Manufacturer.id == manufacturer_id)
        )
        manufacturer = result.scalar_one_or_none()
        if not manufacturer:
            raise NotFoundError("Manufacturer", manufacturer_id)
        return manufacturer

    async def list_manufacturers(self, status: Optional[str] = None) -> List[Manufacturer]:
        stmt = select(Manufacturer).order_by(Manufacturer.name)
        if status:
            stmt = stmt.where(Manufacturer.status == status)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def top_manufacturers(self, limit: int = 10) -> List[Manufacturer]:
        """Active manufacturers by cached on-time rate."""
        stmt = (
            select(Manufacturer)
            .where(Manufacturer.status == ManufacturerStatus.ACTIVE.value)
            .order_by(Manufacturer.on_time_rate.desc(), Manufacturer.name)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_product(self, product_id: uuid.UUID) -> Product:
        result = await self.db.execute(
            select(Product).where(Product.id == product_id)
        )
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    async def get_product_by_sku(self, sku: str) -> Optional[Product]:
        result = await self.db.execute(select(Product).where(Product.sku == sku))
        return result.scalar_one_or_none()

    async def list_products(
        self,
        manufacturer_id: Optional[uuid.UUID] = None,
        category: Optional[str] = None,
    ) -> List[Product]:
        stmt = select(Product).order_by(Product.name)
        if manufacturer_id:
            stmt = stmt.where(Product.manufacturer_id == manufacturer_id)
        if category:
            stmt = stmt.where(Product.category == category)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ==================== Alerts ====================

    async def get_alert(self, alert_id: uuid.UUID, for_update: bool = False) -> Alert:
        stmt = select(Alert).where(Alert.id == alert_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        alert = result.scalar_one_or_none()
        if not alert:
            raise NotFoundError("Alert", alert_id)
        return alert

    async def list_alerts(
        self,
        resolved: Optional[bool] = None,
        severity: Optional[str] = None,
        alert_type: Optional[str] = None,
        order_id: Optional[uuid.UUID] = None,
        manufacturer_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Alert], int]:
        """Alerts by severity rank, then newest first."""
        filters = []
        if resolved is not None:
            filters.append(Alert.resolved == resolved)
        if severity:
            filters.append(Alert.severity == severity)
        if alert_type:
            filters.append(Alert.type == alert_type)
        if order_id:
            filters.append(Alert.order_id == order_id)
        if manufacturer_id:
            filters.append(Alert.manufacturer_id == manufacturer_id)

        count_stmt = select(func.count(Alert.id))
        if filters:
            count_stmt = count_stmt.where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = select(Alert)
        if filters:
            stmt = stmt.where(and_(*filters))
        stmt = stmt.order_by(severity_order(), Alert.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def count_alerts(
        self,
        resolved: Optional[bool] = None,
        severity: Optional[str] = None,
    ) -> int:
        stmt = select(func.count(Alert.id))
        if resolved is not None:
            stmt = stmt.where(Alert.resolved == resolved)
        if severity:
            stmt = stmt.where(Alert.severity == severity)
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_active_alerts(self) -> int:
        return await self.count_alerts(resolved=False)

    async def has_open_alert(self, order_id: uuid.UUID, alert_type: str) -> bool:
        stmt = select(func.count(Alert.id)).where(
            Alert.order_id == order_id,
            Alert.type == alert_type,
            Alert.resolved.is_(False),
        )
        return ((await self.db.execute(stmt)).scalar() or 0) > 0

    # ==================== Logs ====================

    async def list_email_logs(
        self,
        email_type: Optional[str] = None,
        order_id: Optional[uuid.UUID] = None,
        manufacturer_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[EmailLog], int]:
        filters = []
        if email_type:
            filters.append(EmailLog.type == email_type)
        if order_id:
            filters.append(EmailLog.order_id == order_id)
        if manufacturer_id:
            filters.append(EmailLog.manufacturer_id == manufacturer_id)

        count_stmt = select(func.count(EmailLog.id))
        if filters:
            count_stmt = count_stmt.where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = select(EmailLog)
        if filters:
            stmt = stmt.where(and_(*filters))
        stmt = stmt.order_by(EmailLog.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def list_activity_logs(
        self,
        order_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[ActivityLog], int]:
        filters = []
        if order_id:
            filters.append(ActivityLog.order_id == order_id)
        if action:
            filters.append(ActivityLog.action == action)

        count_stmt = select(func.count(ActivityLog.id))
        if filters:
            count_stmt = count_stmt.where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = select(ActivityLog)
        if filters:
            stmt = stmt.where(and_(*filters))
        stmt = stmt.order_by(ActivityLog.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    # ==================== Unit of work ====================

    def add(self, instance) -> None:
        self.db.add(instance)

    async def flush(self) -> None:
        try:
            await self.db.flush()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(f"Stale write rejected: {e}")
            raise ConcurrentModificationError("Order") from e

    async def commit(self, entity: str = "Order") -> None:
        """
        Commit the unit of work. A lost optimistic race or a unique-key clash
        with a concurrent insert rolls everything back.
        """
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(f"Stale write rejected: {e}")
            raise ConcurrentModificationError(entity) from e
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"{entity} write rejected by a unique constraint: {e.orig}")
            raise ConcurrentModificationError(entity) from e

    async def rollback(self) -> None:
        await self.db.rollback()

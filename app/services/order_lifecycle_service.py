"""
Order Lifecycle Service

Intake and every lifecycle transition of an order:

    create_order -> assign -> notify -> ship -> deliver
    mark_delayed, escalate, cancel

Each operation loads the order (row-locked where the database supports it),
validates the transition, applies status + timestamps + side-effect records
(activity, emails, alerts) and commits them as one unit. Validation always
happens before the first mutation, so a failed call leaves nothing behind.
"""
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, Callable, Tuple

from app.config import Settings, get_settings
from app.core.errors import ValidationError, InvalidTransitionError, NotFoundError, ConcurrentModificationError
from app.db_types import utc_now, as_utc
from app.models.activity_log import ActivityAction
from app.models.alert import Alert
from app.models.order import Order, OrderStatus, OrderPriority
from app.schemas.order import OrderCreate
from app.services.alert_service import AlertService
from app.services.audit_service import AuditService
from app.services.metrics_service import MetricsService
from app.services.notification_service import NotificationService
from app.services.order_state_machine import LifecycleOperation, validate_operation, apply_transition
from app.services.order_store import OrderStore


logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 2


def _required(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field.replace('_', ' ')} is required", field=field)
    return value


class OrderLifecycleService:
    """Order intake and lifecycle transitions."""

    def __init__(
        self,
        store: OrderStore,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.clock = clock or utc_now
        self.settings = settings or get_settings()
        self.audit = AuditService(store)
        self.notifications = NotificationService(store)
        self.alerts = AlertService(store, clock=self.clock, settings=self.settings)
        self.metrics = MetricsService(store, clock=self.clock, settings=self.settings)

    # ==================== Helpers ====================

    async def generate_order_number(self, now: Optional[datetime] = None) -> str:
        """Generate order number: FI-YYMM-NNNN"""
        now = now or self.clock()
        prefix = f"{self.settings.ORDER_NUMBER_PREFIX}-{now.strftime('%y%m')}-"
        count = await self.store.count_orders_with_number_prefix(prefix)
        return f"{prefix}{(count + 1):04d}"

    async def _load(self, order_id: uuid.UUID) -> Order:
        return await self.store.get_order(order_id, for_update=True)

    def _check(self, order: Order, operation: LifecycleOperation) -> None:
        try:
            validate_operation(order.status, operation)
        except InvalidTransitionError as e:
            logger.warning(
                f"Rejected {operation.value} on order {order.order_number} "
                f"(status {order.status}): {e.reason}"
            )
            raise

    def _reject(self, order: Order, operation: LifecycleOperation, reason: str) -> None:
        logger.warning(
            f"Rejected {operation.value} on order {order.order_number} "
            f"(status {order.status}): {reason}"
        )
        raise InvalidTransitionError(
            current_status=order.status,
            operation=operation.value,
            reason=reason,
        )

    async def _finish(self, order: Order) -> Order:
        await self.store.commit()
        return await self.store.get_order(order.id, with_children=True)

    async def get_order(self, order_id: uuid.UUID) -> Order:
        return await self.store.get_order(order_id, with_children=True)

    # ==================== Intake ====================

    async def create_order(self, data: OrderCreate, performed_by: Optional[str] = None) -> Order:
        """Create a RECEIVED order. Price defaults to quantity x product price."""
        customer_name = _required(data.customer_name, "customer_name")
        customer_email = _required(data.customer_email, "customer_email")
        if data.quantity is None or data.quantity <= 0:
            raise ValidationError("quantity must be greater than zero", field="quantity")
        if data.total_price is not None and data.total_price < 0:
            raise ValidationError("total price cannot be negative", field="total_price")

        now = self.clock()
        estimated_ship = as_utc(data.estimated_ship)

        # Numbers come from a per-month count, so two concurrent intakes can
        # pick the same one; the unique index rejects the second, which
        # retries once with a fresh count.
        for attempt in range(ORDER_NUMBER_ATTEMPTS):
            product = await self.store.get_product(data.product_id)
            total_price = data.total_price
            if total_price is None:
                total_price = Decimal(product.price) * data.quantity

            order = Order(
                id=uuid.uuid4(),
                order_number=await self.generate_order_number(now),
                customer_name=customer_name,
                customer_email=customer_email,
                customer_phone=(data.customer_phone or "").strip(),
                shipping_address=(data.shipping_address or "").strip(),
                quantity=data.quantity,
                total_price=total_price,
                source=data.source.value,
                priority=data.priority.value,
                status=OrderStatus.RECEIVED.value,
                notes=data.notes,
                product_id=product.id,
                estimated_ship=estimated_ship,
                created_at=now,
                updated_at=now,
            )
            order_number = order.order_number
            self.store.add(order)
            self.audit.log(
                ActivityAction.ORDER_CREATED,
                f"Order {order_number} received from {order.source} for {customer_name}",
                order_id=order.id,
                performed_by=performed_by,
                created_at=now,
            )
            try:
                order = await self._finish(order)
            except ConcurrentModificationError:
                if attempt + 1 >= ORDER_NUMBER_ATTEMPTS:
                    raise
                logger.warning(f"Order number {order_number} already taken, retrying intake")
                continue

            logger.info(f"Order {order.order_number} created ({order.quantity} x {product.sku})")
            return order

    # ==================== Transitions ====================

    async def assign(
        self,
        order_id: uuid.UUID,
        manufacturer_id: uuid.UUID,
        performed_by: Optional[str] = None,
    ) -> Order:
        """RECEIVED -> ASSIGNED. The manufacturer must exist and be active."""
        order = await self._load(order_id)
        self._check(order, LifecycleOperation.ASSIGN)

        manufacturer = await self.store.get_manufacturer(manufacturer_id)
        if not manufacturer.is_active:
            self._reject(
                order,
                LifecycleOperation.ASSIGN,
                f"manufacturer {manufacturer.name} is not active",
            )

        now = self.clock()
        apply_transition(order, LifecycleOperation.ASSIGN, now)
        order.manufacturer_id = manufacturer.id
        order.manufacturer = manufacturer
        order.updated_at = now

        self.audit.log(
            ActivityAction.ORDER_ASSIGNED,
            f"Order {order.order_number} assigned to {manufacturer.name}",
            order_id=order.id,
            performed_by=performed_by,
            created_at=now,
        )
        order = await self._finish(order)
        logger.info(f"Order {order.order_number} assigned to {manufacturer.name}")
        return order

    async def notify(self, order_id: uuid.UUID, performed_by: Optional[str] = None) -> Order:
        """ASSIGNED -> NOTIFIED; sends the order confirmation to the manufacturer."""
        order = await self._load(order_id)
        self._check(order, LifecycleOperation.NOTIFY)
        if order.manufacturer is None:
            self._reject(
                order,
                LifecycleOperation.NOTIFY,
                "order must be assigned to a manufacturer before it can be notified",
            )

        now = self.clock()
        apply_transition(order, LifecycleOperation.NOTIFY, now)
        order.updated_at = now

        self.notifications.send_order_confirmation(order, now=now)
        self.audit.log(
            ActivityAction.ORDER_NOTIFIED,
            f"Notification sent to {order.manufacturer.name} for order {order.order_number}",
            order_id=order.id,
            performed_by=performed_by,
            created_at=now,
        )
        order = await self._finish(order)
        logger.info(f"Order {order.order_number} notified")
        return order

    async def ship(
        self,
        order_id: uuid.UUID,
        carrier: Optional[str],
        tracking_number: Optional[str],
        performed_by: Optional[str] = None,
        manufacturer_id: Optional[uuid.UUID] = None,
    ) -> Order:
        """
        ASSIGNED / NOTIFIED / DELAYED -> SHIPPED.

        Carrier and tracking number are validated before the order is loaded.
        When manufacturer_id is given (portal), orders belonging to another
        manufacturer are reported as not found.
        """
        carrier = _required(carrier, "carrier")
        tracking_number = _required(tracking_number, "tracking_number")

        order = await self._load(order_id)
        if manufacturer_id is not None and order.manufacturer_id != manufacturer_id:
            raise NotFoundError("Order", order_id)
        self._check(order, LifecycleOperation.SHIP)

        now = self.clock()
        apply_transition(order, LifecycleOperation.SHIP, now)
        order.carrier = carrier
        order.tracking_number = tracking_number
        order.updated_at = now

        self.notifications.send_shipping_notification(order, now=now)
        self.audit.log(
            ActivityAction.ORDER_SHIPPED,
            f"Order {order.order_number} shipped via {carrier} ({tracking_number})",
            order_id=order.id,
            performed_by=performed_by,
            created_at=now,
        )
        order = await self._finish(order)
        logger.info(f"Order {order.order_number} shipped via {carrier}")
        return order

    async def deliver(self, order_id: uuid.UUID, performed_by: Optional[str] = None) -> Order:
        """SHIPPED -> DELIVERED; refreshes the manufacturer's cached metrics."""
        order = await self._load(order_id)
        self._check(order, LifecycleOperation.DELIVER)

        now = self.clock()
        apply_transition(order, LifecycleOperation.DELIVER, now)
        order.updated_at = now

        self.audit.log(
            ActivityAction.ORDER_DELIVERED,
            f"Order {order.order_number} delivered to {order.customer_name}",
            order_id=order.id,
            performed_by=performed_by,
            created_at=now,
        )
        if order.manufacturer_id:
            await self.metrics.refresh_manufacturer_metrics(order.manufacturer_id)

        order = await self._finish(order)
        logger.info(f"Order {order.order_number} delivered")
        return order

    async def mark_delayed(
        self,
        order_id: uuid.UUID,
        performed_by: Optional[str] = None,
    ) -> Tuple[Order, Alert]:
        """ASSIGNED / NOTIFIED -> DELAYED; priority becomes URGENT and a DELAY alert is raised."""
        order = await self._load(order_id)
        self._check(order, LifecycleOperation.MARK_DELAYED)

        now = self.clock()
        priority_before = order.priority
        apply_transition(order, LifecycleOperation.MARK_DELAYED, now)
        order.priority = OrderPriority.URGENT.value
        order.updated_at = now

        alert = self.alerts.delay_alert(order, priority_before, now)
        self.notifications.send_delay_alert(order, now=now)
        self.audit.log(
            ActivityAction.ORDER_DELAYED,
            f"Order {order.order_number} marked delayed ({alert.severity} alert raised)",
            order_id=order.id,
            performed_by=performed_by,
            created_at=now,
        )
        order = await self._finish(order)
        logger.info(f"Order {order.order_number} delayed")
        return order, alert

    async def escalate(
        self,
        order_id: uuid.UUID,
        performed_by: Optional[str] = None,
    ) -> Tuple[Order, Alert]:
        """Raise a CRITICAL escalation alert. The status does not change."""
        order = await self._load(order_id)
        self._check(order, LifecycleOperation.ESCALATE)

        now = self.clock()
        alert = self.alerts.escalation_alert(order, now)
        self.notifications.send_escalation(order, now=now)
        self.audit.log(
            ActivityAction.ORDER_ESCALATED,
            f"Escalation alert created for order {order.order_number}",
            order_id=order.id,
            performed_by=performed_by,
            created_at=now,
        )
        order = await self._finish(order)
        logger.info(f"Order {order.order_number} escalated")
        return order, alert

    async def cancel(self, order_id: uuid.UUID, performed_by: Optional[str] = None) -> Order:
        """Any open status -> CANCELLED."""
        order = await self._load(order_id)
        self._check(order, LifecycleOperation.CANCEL)

        now = self.clock()
        previous = apply_transition(order, LifecycleOperation.CANCEL, now)
        order.updated_at = now

        self.audit.log(
            ActivityAction.ORDER_CANCELLED,
            f"Order {order.order_number} cancelled (was {previous})",
            order_id=order.id,
            performed_by=performed_by,
            created_at=now,
        )
        order = await self._finish(order)
        logger.info(f"Order {order.order_number} cancelled")
        return order

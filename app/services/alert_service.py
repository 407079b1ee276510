"""
Alert Service

Alert rules for order exceptions:
- severity policy for DELAY, OVERDUE and ESCALATION alerts
- manual alerts (QUALITY, STOCK, ...)
- one-way, idempotent resolution
- periodic policy scan for overdue and long-delayed orders

Severity is decided once when the alert is created and never changes.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any, Callable, Iterable, Tuple

from app.config import Settings, get_settings
from app.core.errors import ValidationError
from app.db_types import utc_now
from app.models.alert import Alert, AlertType, AlertSeverity, SEVERITY_RANK
from app.models.activity_log import ActivityAction
from app.models.order import Order, OrderStatus, OrderPriority
from app.services.audit_service import AuditService
from app.services.metrics_service import order_age_days
from app.services.notification_service import NotificationService
from app.services.order_store import OrderStore


logger = logging.getLogger(__name__)

ELEVATED_PRIORITIES = (OrderPriority.HIGH.value, OrderPriority.URGENT.value)

OVERDUE_CANDIDATE_STATUSES = [OrderStatus.ASSIGNED.value, OrderStatus.NOTIFIED.value]


# ==================== Severity rules ====================

def escalation_severity() -> AlertSeverity:
    return AlertSeverity.CRITICAL


def delay_severity(priority: str, age_days: float, delay_threshold_days: float) -> AlertSeverity:
    """CRITICAL for high/urgent orders or ones older than the delay threshold, else HIGH."""
    if priority in ELEVATED_PRIORITIES or age_days > delay_threshold_days:
        return AlertSeverity.CRITICAL
    return AlertSeverity.HIGH


def overdue_severity(priority: str, age_days: float, fulfillment_threshold_days: float) -> AlertSeverity:
    """CRITICAL at twice the fulfillment threshold, HIGH for high/urgent orders, else MEDIUM."""
    if age_days >= 2 * fulfillment_threshold_days:
        return AlertSeverity.CRITICAL
    if priority in ELEVATED_PRIORITIES:
        return AlertSeverity.HIGH
    return AlertSeverity.MEDIUM


def sort_alerts(alerts: Iterable[Alert]) -> List[Alert]:
    """Severity rank ascending (CRITICAL first), then newest first."""
    newest_first = sorted(alerts, key=lambda a: a.created_at, reverse=True)
    return sorted(newest_first, key=lambda a: SEVERITY_RANK.get(a.severity, len(SEVERITY_RANK)))


# ==================== Service ====================

class AlertService:
    """Creates, lists and resolves alerts."""

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

    def stage_alert(
        self,
        alert_type: AlertType,
        severity: AlertSeverity,
        title: str,
        message: str,
        order_id: Optional[uuid.UUID] = None,
        manufacturer_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> Alert:
        """Add an alert to the current unit of work without committing."""
        alert = Alert(
            type=alert_type.value,
            severity=severity.value,
            title=title,
            message=message,
            order_id=order_id,
            manufacturer_id=manufacturer_id,
            resolved=False,
            created_at=now or self.clock(),
        )
        self.store.add(alert)
        logger.info(f"[ALERT] {severity.value} {alert_type.value}: {title}")
        return alert

    def delay_alert(self, order: Order, priority_before: str, now: datetime) -> Alert:
        age = order_age_days(order, now)
        severity = delay_severity(priority_before, age, self.settings.DELAY_THRESHOLD_DAYS)
        return self.stage_alert(
            AlertType.DELAY,
            severity,
            title=f"Order {order.order_number} is delayed",
            message=(
                f"Order has exceeded expected fulfillment time. "
                f"Customer {order.customer_name} may need to be notified."
            ),
            order_id=order.id,
            manufacturer_id=order.manufacturer_id,
            now=now,
        )

    def escalation_alert(self, order: Order, now: datetime) -> Alert:
        return self.stage_alert(
            AlertType.ESCALATION,
            escalation_severity(),
            title=f"Order {order.order_number} Escalated",
            message=(
                f"Order {order.order_number} for {order.customer_name} has been "
                f"escalated and requires immediate attention."
            ),
            order_id=order.id,
            manufacturer_id=order.manufacturer_id,
            now=now,
        )

    def overdue_alert(self, order: Order, age_days: float, now: datetime) -> Alert:
        severity = overdue_severity(order.priority, age_days, self.settings.FULFILLMENT_THRESHOLD_DAYS)
        return self.stage_alert(
            AlertType.OVERDUE,
            severity,
            title=f"Order {order.order_number} is overdue",
            message=(
                f"Order {order.order_number} has been {order.status.lower()} for "
                f"{age_days:.1f} days without shipping "
                f"(threshold {self.settings.FULFILLMENT_THRESHOLD_DAYS} days)."
            ),
            order_id=order.id,
            manufacturer_id=order.manufacturer_id,
            now=now,
        )

    async def create_alert(
        self,
        alert_type: AlertType,
        severity: AlertSeverity,
        title: str,
        message: str,
        order_id: Optional[uuid.UUID] = None,
        manufacturer_id: Optional[uuid.UUID] = None,
        performed_by: Optional[str] = None,
    ) -> Alert:
        """Raise an alert by hand (quality issue, stock problem, ...)."""
        if not title or not title.strip():
            raise ValidationError("Alert title is required", field="title")
        if not message or not message.strip():
            raise ValidationError("Alert message is required", field="message")

        order_number = None
        if order_id:
            order = await self.store.get_order(order_id)
            order_number = order.order_number
            if manufacturer_id is None:
                manufacturer_id = order.manufacturer_id
        if manufacturer_id:
            await self.store.get_manufacturer(manufacturer_id)

        now = self.clock()
        alert = self.stage_alert(
            alert_type,
            severity,
            title=title.strip(),
            message=message.strip(),
            order_id=order_id,
            manufacturer_id=manufacturer_id,
            now=now,
        )
        subject = f" for order {order_number}" if order_number else ""
        self.audit.log(
            ActivityAction.ALERT_CREATED,
            f"{severity.value} {alert_type.value} alert created{subject}: {alert.title}",
            order_id=order_id,
            performed_by=performed_by,
            created_at=now,
        )
        await self.store.commit(entity="Alert")
        return alert

    async def resolve_alert(self, alert_id: uuid.UUID, resolved_by: Optional[str] = None) -> Alert:
        """
        Mark an alert resolved.

        Resolving an already-resolved alert is a no-op that returns it unchanged.
        """
        alert = await self.store.get_alert(alert_id, for_update=True)
        if alert.resolved:
            logger.debug(f"Alert {alert_id} already resolved")
            return alert

        now = self.clock()
        alert.resolved = True
        alert.resolved_at = now
        alert.resolved_by = resolved_by

        self.audit.log(
            ActivityAction.ALERT_RESOLVED,
            f"Alert resolved: {alert.title}" + (f" by {resolved_by}" if resolved_by else ""),
            order_id=alert.order_id,
            performed_by=resolved_by,
            created_at=now,
        )
        await self.store.commit(entity="Alert")
        logger.info(f"Alert {alert_id} resolved by {resolved_by or 'unknown'}")
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
        return await self.store.list_alerts(
            resolved=resolved,
            severity=severity,
            alert_type=alert_type,
            order_id=order_id,
            manufacturer_id=manufacturer_id,
            skip=skip,
            limit=limit,
        )

    async def alert_counts(self) -> Dict[str, Any]:
        total = await self.store.count_alerts()
        active = await self.store.count_alerts(resolved=False)
        return {
            "total": total,
            "active": active,
            "critical": await self.store.count_alerts(resolved=False, severity=AlertSeverity.CRITICAL.value),
            "high": await self.store.count_alerts(resolved=False, severity=AlertSeverity.HIGH.value),
            "resolved": total - active,
        }

    async def scan(self, now: Optional[datetime] = None) -> List[Alert]:
        """
        Policy scan over open orders.

        - ASSIGNED/NOTIFIED older than FULFILLMENT_THRESHOLD_DAYS since assignment:
          OVERDUE alert plus a REMINDER email to the manufacturer
        - DELAYED older than DELAY_THRESHOLD_DAYS: DELAY alert

        Orders that already carry an unresolved alert of the same type are skipped.
        """
        now = now or self.clock()
        created: List[Alert] = []

        for order in await self.store.orders_in_status(OVERDUE_CANDIDATE_STATUSES):
            age = order_age_days(order, now)
            if age <= self.settings.FULFILLMENT_THRESHOLD_DAYS:
                continue
            if await self.store.has_open_alert(order.id, AlertType.OVERDUE.value):
                continue
            alert = self.overdue_alert(order, age, now)
            self.notifications.send_reminder(order, days_since_assigned=int(age), now=now)
            self.audit.log(
                ActivityAction.ALERT_CREATED,
                f"Overdue alert created for order {order.order_number} ({alert.severity})",
                order_id=order.id,
                created_at=now,
            )
            created.append(alert)

        for order in await self.store.orders_in_status([OrderStatus.DELAYED.value]):
            age = order_age_days(order, now)
            if age <= self.settings.DELAY_THRESHOLD_DAYS:
                continue
            if await self.store.has_open_alert(order.id, AlertType.DELAY.value):
                continue
            alert = self.delay_alert(order, order.priority, now)
            self.audit.log(
                ActivityAction.ALERT_CREATED,
                f"Delay alert created for order {order.order_number} ({alert.severity})",
                order_id=order.id,
                created_at=now,
            )
            created.append(alert)

        if created:
            await self.store.commit()
        logger.info(f"Alert scan created {len(created)} alert(s)")
        return created

"""
Fulfillment Metrics

One source of truth for every derived number shown on the dashboard, the
manufacturer pages and the portal:
- average fulfillment days and on-time rate over delivered orders
- manufacturer response time (assigned -> shipped)
- urgency class of an open order (hours since assignment)
- daily trend series bucketed by local calendar day

The module-level functions are pure and take the current time as an
argument. MetricsService wires them to an OrderStore.
"""
import logging
import math
import uuid
from datetime import datetime, date, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable, Callable
from zoneinfo import ZoneInfo

from app.config import Settings, get_settings
from app.db_types import utc_now
from app.models.order import Order, OrderStatus, OrderSource
from app.services.order_store import OrderStore


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600

PENDING_STATUSES = [OrderStatus.RECEIVED.value, OrderStatus.ASSIGNED.value]
PORTAL_OPEN_STATUSES = [
    OrderStatus.ASSIGNED.value,
    OrderStatus.NOTIFIED.value,
    OrderStatus.DELAYED.value,
]


class UrgencyClass(str, Enum):
    """Read-time emphasis for open orders; never stored."""
    OVERDUE = "overdue"
    APPROACHING = "approaching"
    ON_TIME = "on-time"


# ==================== Pure functions ====================

def _delivered(orders: Iterable[Order]) -> List[Order]:
    return [
        o for o in orders
        if o.status == OrderStatus.DELIVERED.value and o.delivered_at is not None
    ]


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def fulfillment_days(order: Order) -> float:
    return (order.delivered_at - order.created_at).total_seconds() / SECONDS_PER_DAY


def average_fulfillment_days(orders: Iterable[Order]) -> float:
    """Mean created -> delivered time in days over delivered orders; 0.0 when none."""
    delivered = _delivered(orders)
    if not delivered:
        return 0.0
    return sum(fulfillment_days(o) for o in delivered) / len(delivered)


def is_on_time(order: Order) -> bool:
    """Delivered on or before the estimated ship date. No estimate counts as on time."""
    if order.estimated_ship is None:
        return True
    if order.delivered_at is None:
        return False
    return order.delivered_at <= order.estimated_ship


def on_time_rate(orders: Iterable[Order]) -> int:
    """Percent (0-100, rounded half up) of delivered orders that were on time."""
    delivered = _delivered(orders)
    if not delivered:
        return 0
    on_time = sum(1 for o in delivered if is_on_time(o))
    return int(round_half_up(on_time * 100 / len(delivered)))


def average_response_hours(orders: Iterable[Order], limit: int = 100) -> float:
    """
    Mean assigned -> shipped time in hours.

    Samples the `limit` most recently shipped orders that carry both stamps.
    """
    qualifying = [o for o in orders if o.assigned_at is not None and o.shipped_at is not None]
    if not qualifying:
        return 0.0
    qualifying.sort(key=lambda o: o.shipped_at, reverse=True)
    sample = qualifying[:limit]
    total = sum((o.shipped_at - o.assigned_at).total_seconds() for o in sample)
    return total / len(sample) / SECONDS_PER_HOUR


def hours_since(ts: Optional[datetime], now: datetime) -> float:
    if ts is None:
        return 0.0
    return (now - ts).total_seconds() / SECONDS_PER_HOUR


def classify_urgency(
    assigned_at: Optional[datetime],
    now: datetime,
    approaching_hours: float = 24,
    overdue_hours: float = 48,
) -> UrgencyClass:
    """overdue (> 48h since assignment), approaching (> 24h), else on-time."""
    if assigned_at is None:
        return UrgencyClass.ON_TIME
    elapsed = hours_since(assigned_at, now)
    if elapsed > overdue_hours:
        return UrgencyClass.OVERDUE
    if elapsed > approaching_hours:
        return UrgencyClass.APPROACHING
    return UrgencyClass.ON_TIME


def order_age_days(order: Order, now: datetime) -> float:
    """Days since assignment (since creation for unassigned orders)."""
    start = order.assigned_at or order.created_at
    return (now - start).total_seconds() / SECONDS_PER_DAY


def resolve_timezone(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def trend_days(days: int, now: datetime, tz: tzinfo) -> List[date]:
    """The trailing `days` local calendar days, oldest first, ending today."""
    today = now.astimezone(tz).date()
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def local_day_bounds(day: date, tz: tzinfo):
    """[start, end) of a local calendar day, as aware UTC datetimes."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def trend_window(days: int, now: datetime, tz: tzinfo):
    """UTC [start, end) covering the trend series."""
    series = trend_days(days, now, tz)
    start, _ = local_day_bounds(series[0], tz)
    _, end = local_day_bounds(series[-1], tz)
    return start, end


def _bucket(
    orders: Iterable[Order],
    days: int,
    now: datetime,
    tz: tzinfo,
    stamp: Callable[[Order], Optional[datetime]],
) -> Dict[date, List[Order]]:
    buckets: Dict[date, List[Order]] = {day: [] for day in trend_days(days, now, tz)}
    for order in orders:
        ts = stamp(order)
        if ts is None:
            continue
        day = ts.astimezone(tz).date()
        if day in buckets:
            buckets[day].append(order)
    return buckets


def order_volume_trend(
    orders: Iterable[Order],
    days: int,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> List[Dict[str, Any]]:
    """Orders created per local day; exactly `days` points, empty days report 0."""
    buckets = _bucket(orders, days, now, tz, lambda o: o.created_at)
    return [
        {"date": day.strftime("%m/%d"), "orders": len(bucket)}
        for day, bucket in buckets.items()
    ]


def fulfillment_trend(
    orders: Iterable[Order],
    days: int,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> List[Dict[str, Any]]:
    """Average fulfillment days of orders delivered per local day; empty days report 0.0."""
    buckets = _bucket(_delivered(orders), days, now, tz, lambda o: o.delivered_at)
    return [
        {"date": day.strftime("%m/%d"), "avg_days": round_half_up(average_fulfillment_days(bucket), 1)}
        for day, bucket in buckets.items()
    ]


def _breakdown(counts: Dict[str, int], keys: Iterable[str]) -> List[Dict[str, Any]]:
    return [
        {"name": key, "value": counts.get(key, 0)}
        for key in keys
        if counts.get(key, 0) > 0
    ]


def orders_by_status(counts: Dict[str, int]) -> List[Dict[str, Any]]:
    """Chart breakdown in lifecycle order, zero counts omitted."""
    return _breakdown(counts, [s.value for s in OrderStatus])


def orders_by_source(counts: Dict[str, int]) -> List[Dict[str, Any]]:
    return _breakdown(counts, [s.value for s in OrderSource])


# ==================== Service ====================

class MetricsService:
    """Read-side projections over the order history."""

    def __init__(
        self,
        store: OrderStore,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.clock = clock or utc_now
        self.settings = settings or get_settings()
        self.tz = resolve_timezone(self.settings.TIMEZONE)

    def urgency(self, order: Order, now: Optional[datetime] = None) -> Optional[UrgencyClass]:
        """Urgency class for open (assigned, notified, delayed) orders, else None."""
        if order.status not in PORTAL_OPEN_STATUSES:
            return None
        return classify_urgency(
            order.assigned_at,
            now or self.clock(),
            approaching_hours=self.settings.URGENCY_APPROACHING_HOURS,
            overdue_hours=self.settings.URGENCY_OVERDUE_HOURS,
        )

    async def trends(self, days: Optional[int] = None) -> Dict[str, Any]:
        """Fulfillment and order volume series over the trailing `days` local days."""
        days = days or self.settings.TREND_DAYS
        now = self.clock()
        start, end = trend_window(days, now, self.tz)

        created = await self.store.orders_created_between(start, end)
        delivered = await self.store.orders_delivered_between(start, end)
        return {
            "fulfillment_trend": fulfillment_trend(delivered, days, now, self.tz),
            "order_volume": order_volume_trend(created, days, now, self.tz),
        }

    async def dashboard(self) -> Dict[str, Any]:
        """Stats, chart data, top manufacturers and recent activity."""
        total_orders = await self.store.count_orders()
        pending_orders = await self.store.count_orders(statuses=PENDING_STATUSES)
        active_alerts = await self.store.count_active_alerts()
        delivered = await self.store.delivered_orders()

        status_counts = await self.store.count_orders_by_status()
        source_counts = await self.store.count_orders_by_source()
        trends = await self.trends()

        top = await self.store.top_manufacturers(limit=10)
        recent_activity, _ = await self.store.list_activity_logs(limit=10)

        return {
            "stats": {
                "total_orders": total_orders,
                "pending_orders": pending_orders,
                "active_alerts": active_alerts,
                "avg_fulfillment_days": round_half_up(average_fulfillment_days(delivered), 1),
                "on_time_rate": on_time_rate(delivered),
            },
            "charts": {
                "orders_by_source": orders_by_source(source_counts),
                "orders_by_status": orders_by_status(status_counts),
                "fulfillment_trend": trends["fulfillment_trend"],
                "order_volume": trends["order_volume"],
            },
            "top_manufacturers": top,
            "recent_activity": recent_activity,
        }

    async def manufacturer_performance(self, manufacturer_id: uuid.UUID) -> Dict[str, Any]:
        """Live metrics for one manufacturer, recomputed from its order history."""
        manufacturer = await self.store.get_manufacturer(manufacturer_id)
        delivered = await self.store.delivered_orders(manufacturer_id=manufacturer_id)
        shipped = await self.store.shipped_orders_for_response_time(
            manufacturer_id=manufacturer_id,
            limit=self.settings.RESPONSE_TIME_SAMPLE_SIZE,
        )
        status_counts = await self.store.count_orders_by_status(manufacturer_id=manufacturer_id)

        return {
            "manufacturer_id": manufacturer.id,
            "name": manufacturer.name,
            "total_orders": sum(status_counts.values()),
            "delivered_orders": len(delivered),
            "avg_fulfillment_days": round_half_up(average_fulfillment_days(delivered), 1),
            "on_time_rate": on_time_rate(delivered),
            "avg_response_hours": round_half_up(
                average_response_hours(shipped, limit=self.settings.RESPONSE_TIME_SAMPLE_SIZE), 1
            ),
            "orders_by_status": orders_by_status(status_counts),
        }

    async def refresh_manufacturer_metrics(self, manufacturer_id: uuid.UUID):
        """
        Recompute the cached aggregates stored on the manufacturer row.

        Runs inside the caller's unit of work; the caller commits.
        """
        await self.store.flush()
        manufacturer = await self.store.get_manufacturer(manufacturer_id)
        delivered = await self.store.delivered_orders(manufacturer_id=manufacturer_id)

        manufacturer.avg_fulfillment_days = round_half_up(average_fulfillment_days(delivered), 1)
        manufacturer.on_time_rate = on_time_rate(delivered)
        manufacturer.metrics_refreshed_at = self.clock()

        logger.info(
            f"Refreshed metrics for {manufacturer.name}: "
            f"{manufacturer.avg_fulfillment_days} days, {manufacturer.on_time_rate}% on time"
        )
        return manufacturer

    async def _pending_rows(self, manufacturer_id: uuid.UUID, now: datetime) -> List[Dict[str, Any]]:
        pending = await self.store.orders_in_status(
            PORTAL_OPEN_STATUSES,
            manufacturer_id=manufacturer_id,
        )
        return [
            {
                "order": order,
                "urgency": self.urgency(order, now),
                "hours_since_assigned": round_half_up(hours_since(order.assigned_at, now), 1),
            }
            for order in pending
        ]

    async def portal_orders(self, manufacturer_id: uuid.UUID) -> List[Dict[str, Any]]:
        """Open orders of one manufacturer with urgency, oldest assignment first."""
        await self.store.get_manufacturer(manufacturer_id)
        return await self._pending_rows(manufacturer_id, self.clock())

    async def portal_summary(self, manufacturer_id: uuid.UUID) -> Dict[str, Any]:
        """Manufacturer portal view: pending work with urgency, today's output, response time."""
        manufacturer = await self.store.get_manufacturer(manufacturer_id)
        now = self.clock()
        pending_rows = await self._pending_rows(manufacturer_id, now)

        today_start, today_end = local_day_bounds(now.astimezone(self.tz).date(), self.tz)
        shipped_today = await self.store.count_shipped_between(manufacturer_id, today_start, today_end)

        sample = await self.store.shipped_orders_for_response_time(
            manufacturer_id=manufacturer_id,
            limit=self.settings.RESPONSE_TIME_SAMPLE_SIZE,
        )
        recent = await self.store.recently_shipped(manufacturer_id, limit=10)

        return {
            "manufacturer": manufacturer,
            "pending_orders": pending_rows,
            "pending_count": len(pending_rows),
            "total_orders": await self.store.count_orders(manufacturer_id=manufacturer_id),
            "shipped_today": shipped_today,
            "avg_response_hours": round_half_up(
                average_response_hours(sample, limit=self.settings.RESPONSE_TIME_SAMPLE_SIZE), 1
            ),
            "recently_shipped": recent,
        }

# tests/test_metrics.py
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.models.order import OrderStatus
from app.services.metrics_service import (
    UrgencyClass,
    average_fulfillment_days,
    average_response_hours,
    classify_urgency,
    fulfillment_trend,
    is_on_time,
    on_time_rate,
    order_age_days,
    order_volume_trend,
    orders_by_source,
    orders_by_status,
    resolve_timezone,
    round_half_up,
)

NOW = datetime(2024, 10, 15, 12, 0, tzinfo=timezone.utc)


def _order(status=OrderStatus.DELIVERED, created_at=None, delivered_at=None, **extra):
    fields = {
        "status": status.value,
        "created_at": created_at or NOW - timedelta(days=5),
        "assigned_at": None,
        "shipped_at": None,
        "delivered_at": delivered_at,
        "estimated_ship": None,
    }
    fields.update(extra)
    return SimpleNamespace(**fields)


def _delivered_after(days: float, estimated_ship=None):
    created = NOW - timedelta(days=10)
    return _order(
        created_at=created,
        delivered_at=created + timedelta(days=days),
        estimated_ship=estimated_ship,
    )


# ==================== Fulfillment & on-time ====================

def test_average_fulfillment_days_over_delivered_only():
    orders = [
        _delivered_after(2),
        _delivered_after(4),
        _order(status=OrderStatus.SHIPPED, delivered_at=None),
    ]
    assert average_fulfillment_days(orders) == pytest.approx(3.0)


def test_average_fulfillment_days_empty_is_zero():
    assert average_fulfillment_days([]) == 0.0
    assert average_fulfillment_days([_order(status=OrderStatus.ASSIGNED)]) == 0.0


def test_on_time_rate_all_on_time_or_without_estimate():
    created = NOW - timedelta(days=10)
    orders = [
        _delivered_after(3),  # no estimate
        _delivered_after(3, estimated_ship=created + timedelta(days=3)),  # exactly on the deadline
        _delivered_after(1, estimated_ship=created + timedelta(days=5)),
    ]
    assert on_time_rate(orders) == 100


def test_on_time_rate_all_late_is_zero():
    created = NOW - timedelta(days=10)
    orders = [
        _delivered_after(4, estimated_ship=created + timedelta(days=3)),
        _delivered_after(6, estimated_ship=created + timedelta(days=2)),
    ]
    assert on_time_rate(orders) == 0


def test_on_time_rate_rounds_half_up():
    created = NOW - timedelta(days=10)
    late = created + timedelta(days=1)
    orders = [_delivered_after(0.5), _delivered_after(0.5), _delivered_after(3, estimated_ship=late)]
    assert on_time_rate(orders) == 67

    orders = [_delivered_after(0.5)] + [_delivered_after(3, estimated_ship=late)] * 7
    # 12.5% -> 13
    assert on_time_rate(orders) == 13


def test_on_time_rate_empty_is_zero():
    assert on_time_rate([]) == 0


def test_is_on_time_requires_delivery_when_estimated():
    order = _order(status=OrderStatus.SHIPPED, estimated_ship=NOW)
    assert not is_on_time(order)


@pytest.mark.parametrize(
    "value, digits, expected",
    [(2.25, 1, 2.3), (2.24, 1, 2.2), (0.5, 0, 1.0), (66.666, 0, 67.0), (0.0, 1, 0.0)],
)
def test_round_half_up(value, digits, expected):
    assert round_half_up(value, digits) == pytest.approx(expected)


# ==================== Response time ====================

def test_average_response_hours_samples_most_recent():
    def shipped(hours_to_ship, shipped_days_ago):
        shipped_at = NOW - timedelta(days=shipped_days_ago)
        return _order(
            status=OrderStatus.SHIPPED,
            assigned_at=shipped_at - timedelta(hours=hours_to_ship),
            shipped_at=shipped_at,
        )

    orders = [shipped(10, 1), shipped(20, 2), shipped(100, 30)]
    assert average_response_hours(orders, limit=2) == pytest.approx(15.0)
    assert average_response_hours(orders) == pytest.approx(130 / 3)


def test_average_response_hours_ignores_orders_missing_stamps():
    orders = [_order(status=OrderStatus.RECEIVED), _order(status=OrderStatus.ASSIGNED, assigned_at=NOW)]
    assert average_response_hours(orders) == 0.0


# ==================== Urgency ====================

@pytest.mark.parametrize(
    "hours, expected",
    [
        (10, UrgencyClass.ON_TIME),
        (24, UrgencyClass.ON_TIME),
        (24.01, UrgencyClass.APPROACHING),
        (30, UrgencyClass.APPROACHING),
        (48, UrgencyClass.APPROACHING),
        (50, UrgencyClass.OVERDUE),
    ],
)
def test_classify_urgency_boundaries(hours, expected):
    assert classify_urgency(NOW - timedelta(hours=hours), NOW) == expected


def test_classify_urgency_without_assignment_is_on_time():
    assert classify_urgency(None, NOW) == UrgencyClass.ON_TIME


def test_classify_urgency_uses_configured_thresholds():
    assigned = NOW - timedelta(hours=13)
    assert classify_urgency(assigned, NOW, approaching_hours=6, overdue_hours=12) == UrgencyClass.OVERDUE


def test_order_age_days_falls_back_to_created_at():
    order = _order(status=OrderStatus.RECEIVED, created_at=NOW - timedelta(days=2))
    assert order_age_days(order, NOW) == pytest.approx(2.0)

    order.assigned_at = NOW - timedelta(hours=12)
    assert order_age_days(order, NOW) == pytest.approx(0.5)


# ==================== Trends ====================

def test_order_volume_trend_has_one_point_per_day():
    orders = [
        _order(status=OrderStatus.RECEIVED, created_at=NOW - timedelta(hours=1)),
        _order(status=OrderStatus.RECEIVED, created_at=NOW - timedelta(hours=2)),
        _order(status=OrderStatus.RECEIVED, created_at=NOW - timedelta(days=3)),
        _order(status=OrderStatus.RECEIVED, created_at=NOW - timedelta(days=30)),  # outside the window
    ]
    trend = order_volume_trend(orders, days=7, now=NOW)

    assert len(trend) == 7
    assert trend[0]["date"] == "10/09"
    assert trend[-1] == {"date": "10/15", "orders": 2}
    assert {"date": "10/12", "orders": 1} in trend
    assert sum(p["orders"] for p in trend) == 3


def test_fulfillment_trend_averages_per_delivery_day():
    day = NOW - timedelta(days=1)
    orders = [
        _order(created_at=day - timedelta(days=2), delivered_at=day),
        _order(created_at=day - timedelta(days=3), delivered_at=day),
        _order(status=OrderStatus.SHIPPED, created_at=day, delivered_at=None),
    ]
    trend = fulfillment_trend(orders, days=3, now=NOW)

    assert trend == [
        {"date": "10/13", "avg_days": 0.0},
        {"date": "10/14", "avg_days": 2.5},
        {"date": "10/15", "avg_days": 0.0},
    ]


def test_trend_buckets_by_local_calendar_day():
    tz = resolve_timezone("America/New_York")
    # 02:00 UTC on the 15th is still the 14th in New York
    late_evening = datetime(2024, 10, 15, 2, 0, tzinfo=timezone.utc)
    trend = order_volume_trend(
        [_order(status=OrderStatus.RECEIVED, created_at=late_evening)],
        days=2,
        now=NOW,
        tz=tz,
    )
    assert trend == [{"date": "10/14", "orders": 1}, {"date": "10/15", "orders": 0}]


def test_resolve_timezone_utc():
    assert resolve_timezone("UTC") is timezone.utc
    assert resolve_timezone("") is timezone.utc


# ==================== Breakdowns ====================

def test_orders_by_status_omits_zero_and_keeps_lifecycle_order():
    counts = {"DELIVERED": 4, "RECEIVED": 2, "CANCELLED": 0}
    assert orders_by_status(counts) == [
        {"name": "RECEIVED", "value": 2},
        {"name": "DELIVERED", "value": 4},
    ]


def test_orders_by_source():
    assert orders_by_source({"AMAZON": 3, "WAYFAIR": 1}) == [
        {"name": "AMAZON", "value": 3},
        {"name": "WAYFAIR", "value": 1},
    ]

# tests/test_api_misc.py
import uuid
from datetime import timedelta

import pytest

from app.models.order import OrderStatus

from tests.factories import make_manufacturer, seed_order

pytestmark = pytest.mark.asyncio

API = "/api/v1"


# ==================== Manufacturers & products ====================

async def test_manufacturer_crud(client):
    resp = await client.post(
        f"{API}/manufacturers",
        json={
            "name": "Granite Ridge Tile",
            "location": "Tulsa, OK",
            "contact_email": "orders@graniteridge.com",
            "rating": "EXCELLENT",
        },
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["status"] == "ACTIVE"
    assert created["avg_fulfillment_days"] == 0.0
    assert created["on_time_rate"] == 0

    mid = created["id"]
    resp = await client.patch(
        f"{API}/manufacturers/{mid}",
        json={"status": "INACTIVE", "on_time_rate": 99},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "INACTIVE"
    # cached metrics are not writable
    assert resp.json()["on_time_rate"] == 0

    listed = (await client.get(f"{API}/manufacturers", params={"status": "INACTIVE"})).json()
    assert [m["id"] for m in listed] == [mid]

    resp = await client.get(f"{API}/manufacturers/{uuid.uuid4()}")
    assert resp.status_code == 404


async def test_products(client, manufacturer):
    url = f"{API}/manufacturers/{manufacturer.id}/products"
    resp = await client.post(
        url, json={"name": "Slate Gray Tile", "sku": "tile-slate-12", "category": "TILE", "price": "4.50"}
    )
    assert resp.status_code == 201
    assert resp.json()["sku"] == "TILE-SLATE-12"

    dup = await client.post(
        url, json={"name": "Other", "sku": "TILE-SLATE-12", "category": "TILE", "price": "5.00"}
    )
    assert dup.status_code == 400
    assert dup.json()["field"] == "sku"

    negative = await client.post(
        url, json={"name": "Other", "sku": "TILE-2", "category": "TILE", "price": "-1"}
    )
    assert negative.status_code == 400

    assert len((await client.get(url)).json()) == 1
    catalog = (await client.get(f"{API}/products", params={"category": "TILE"})).json()
    assert [p["sku"] for p in catalog] == ["TILE-SLATE-12"]


async def test_manufacturer_performance_endpoint(client, session, product, manufacturer, clock):
    now = clock.now
    await seed_order(
        session, product, OrderStatus.DELIVERED, created_at=now - timedelta(days=3), manufacturer=manufacturer,
        assigned_at=now - timedelta(days=3), shipped_at=now - timedelta(days=2), delivered_at=now - timedelta(days=1),
    )

    body = (await client.get(f"{API}/manufacturers/{manufacturer.id}/performance")).json()

    assert body["delivered_orders"] == 1
    assert body["avg_fulfillment_days"] == 2.0
    assert body["on_time_rate"] == 100
    assert body["avg_response_hours"] == 24.0
    assert body["orders_by_status"] == [{"name": "DELIVERED", "value": 1}]


# ==================== Alerts ====================

async def test_alert_endpoints(client):
    resp = await client.post(
        f"{API}/alerts",
        json={"type": "STOCK", "severity": "HIGH", "title": "Oak shortage", "message": "Two weeks out"},
    )
    assert resp.status_code == 201
    alert_id = resp.json()["id"]

    await client.post(
        f"{API}/alerts",
        json={"type": "QUALITY", "severity": "CRITICAL", "title": "Warped boards", "message": "Batch 7"},
    )

    listed = (await client.get(f"{API}/alerts")).json()
    assert [a["severity"] for a in listed["items"]] == ["CRITICAL", "HIGH"]

    first = await client.post(f"{API}/alerts/{alert_id}/resolve", json={"resolved_by": "ops"})
    second = await client.post(f"{API}/alerts/{alert_id}/resolve")
    assert first.status_code == second.status_code == 200
    assert second.json()["resolved"] is True
    assert second.json()["resolved_by"] == "ops"
    assert second.json()["resolved_at"] == first.json()["resolved_at"]

    summary = (await client.get(f"{API}/alerts/summary")).json()
    assert summary == {"total": 2, "active": 1, "critical": 1, "high": 0, "resolved": 1}

    open_only = (await client.get(f"{API}/alerts", params={"resolved": "false"})).json()
    assert open_only["total"] == 1

    resp = await client.post(f"{API}/alerts/{uuid.uuid4()}/resolve")
    assert resp.status_code == 404


async def test_alert_scan_endpoint(client, session, product, manufacturer, clock):
    now = clock.now
    await seed_order(
        session, product, OrderStatus.ASSIGNED, created_at=now - timedelta(days=7),
        manufacturer=manufacturer, assigned_at=now - timedelta(days=6),
    )

    body = (await client.post(f"{API}/alerts/scan")).json()
    assert body["created"] == 1
    assert body["alerts"][0]["type"] == "OVERDUE"

    again = (await client.post(f"{API}/alerts/scan")).json()
    assert again["created"] == 0


# ==================== Dashboard & logs ====================

async def test_dashboard_and_trends(client, product, manufacturer, settings):
    await client.post(
        f"{API}/orders",
        json={
            "customer_name": "Sam Park",
            "customer_email": "sam@example.com",
            "product_id": str(product.id),
            "quantity": 1,
        },
    )

    body = (await client.get(f"{API}/dashboard")).json()
    assert body["stats"]["total_orders"] == 1
    assert body["stats"]["pending_orders"] == 1
    assert body["stats"]["avg_fulfillment_days"] == 0.0
    assert len(body["charts"]["order_volume"]) == settings.TREND_DAYS
    assert body["charts"]["orders_by_source"] == [{"name": "WEBSITE", "value": 1}]
    assert body["recent_activity"][0]["action"] == "ORDER_CREATED"
    assert [m["name"] for m in body["top_manufacturers"]] == [manufacturer.name]

    trends = (await client.get(f"{API}/dashboard/trends", params={"days": 5})).json()
    assert trends["days"] == 5
    assert len(trends["fulfillment_trend"]) == 5
    assert trends["order_volume"][-1] == {"date": "10/15", "orders": 1}

    resp = await client.get(f"{API}/dashboard/trends", params={"days": 0})
    assert resp.status_code == 422


async def test_log_endpoints(client, product, manufacturer):
    order = (await client.post(
        f"{API}/orders",
        json={
            "customer_name": "Sam Park",
            "customer_email": "sam@example.com",
            "product_id": str(product.id),
            "quantity": 1,
        },
    )).json()
    await client.post(f"{API}/orders/{order['id']}/assign", json={"manufacturer_id": str(manufacturer.id)})
    await client.post(f"{API}/orders/{order['id']}/notify")

    emails = (await client.get(f"{API}/emails", params={"type": "ORDER_CONFIRMATION"})).json()
    assert emails["total"] == 1
    assert emails["items"][0]["recipient"] == manufacturer.contact_email

    activity = (await client.get(f"{API}/activity-logs", params={"order_id": order["id"]})).json()
    assert activity["total"] == 3

    assigned = (await client.get(f"{API}/activity-logs", params={"action": "ORDER_ASSIGNED"})).json()
    assert assigned["total"] == 1


# ==================== Manufacturer portal ====================

async def test_portal_views_and_ship(client, session, product, manufacturer, clock):
    now = clock.now
    mine = await seed_order(
        session, product, OrderStatus.NOTIFIED, created_at=now - timedelta(days=3),
        manufacturer=manufacturer, assigned_at=now - timedelta(hours=50), notified_at=now - timedelta(hours=49),
    )
    other_mill = await make_manufacturer(session, name="Other Mill")
    theirs = await seed_order(
        session, product, OrderStatus.ASSIGNED, created_at=now, manufacturer=other_mill, assigned_at=now,
    )

    summary = (await client.get(f"{API}/portal/manufacturers/{manufacturer.id}/summary")).json()
    assert summary["manufacturer_name"] == manufacturer.name
    assert summary["pending_count"] == 1
    assert summary["pending_orders"][0]["urgency"] == "overdue"
    assert summary["pending_orders"][0]["hours_since_assigned"] == 50.0
    assert summary["shipped_today"] == 0

    orders = (await client.get(f"{API}/portal/manufacturers/{manufacturer.id}/orders")).json()
    assert [o["id"] for o in orders] == [str(mine.id)]
    assert orders[0]["urgency"] == "overdue"
    assert orders[0]["hours_since_assigned"] == 50.0

    resp = await client.get(f"{API}/portal/manufacturers/{uuid.uuid4()}/orders")
    assert resp.status_code == 404

    resp = await client.post(
        f"{API}/portal/manufacturers/{manufacturer.id}/orders/{theirs.id}/ship",
        json={"carrier": "UPS", "tracking_number": "1Z7"},
    )
    assert resp.status_code == 404

    resp = await client.post(
        f"{API}/portal/manufacturers/{manufacturer.id}/orders/{mine.id}/ship",
        json={"carrier": "UPS", "tracking_number": "1Z7"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "SHIPPED"

    summary = (await client.get(f"{API}/portal/manufacturers/{manufacturer.id}/summary")).json()
    assert summary["shipped_today"] == 1
    assert summary["pending_count"] == 0
    assert summary["avg_response_hours"] == 50.0
    assert [o["id"] for o in summary["recently_shipped"]] == [str(mine.id)]


async def test_portal_unknown_manufacturer(client):
    resp = await client.get(f"{API}/portal/manufacturers/{uuid.uuid4()}/summary")
    assert resp.status_code == 404


# ==================== Health ====================

async def test_health_and_root(client):
    health = await client.get("/health")
    assert health.status_code == 200
    body = health.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == "connected"
    # lifespan does not run under ASGITransport
    assert body["checks"]["scheduler"] == "stopped"
    assert body["jobs"] == []

    root = (await client.get("/")).json()
    assert root["docs"] == "/docs"
    assert root["health"] == "/health"

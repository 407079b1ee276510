# tests/test_api_orders.py
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.config import get_settings
from app.main import app

pytestmark = pytest.mark.asyncio

API = "/api/v1"


def _payload(product, **overrides):
    data = {
        "customer_name": "Riley Chen",
        "customer_email": "riley.chen@example.com",
        "customer_phone": "555-0142",
        "shipping_address": "77 Birch Rd, Portland",
        "product_id": str(product.id),
        "quantity": 2,
        "source": "AMAZON",
    }
    data.update(overrides)
    return data


async def _create(client, product, **overrides):
    resp = await client.post(f"{API}/orders", json=_payload(product, **overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_create_order(client, product):
    body = await _create(client, product, performed_by="intake-bot")

    assert body["status"] == "RECEIVED"
    assert body["order_number"] == "FI-2410-0001"
    assert body["source"] == "AMAZON"
    assert body["total_price"] == "240.00"
    assert body["product"]["sku"] == product.sku
    assert body["manufacturer"] is None
    assert body["urgency"] is None
    assert [a["action"] for a in body["activity_logs"]] == ["ORDER_CREATED"]


async def test_create_order_rejects_bad_quantity(client, product):
    resp = await client.post(f"{API}/orders", json=_payload(product, quantity=0))

    assert resp.status_code == 400
    body = resp.json()
    assert body["type"] == "ValidationError"
    assert body["field"] == "quantity"
    assert body["path"] == f"{API}/orders"


async def test_create_order_rejects_malformed_email(client, product):
    resp = await client.post(f"{API}/orders", json=_payload(product, customer_email="not-an-email"))
    assert resp.status_code == 422


async def test_create_order_unknown_product(client, product):
    resp = await client.post(f"{API}/orders", json=_payload(product, product_id=str(uuid.uuid4())))
    assert resp.status_code == 404
    assert resp.json()["entity"] == "Product"


async def test_full_lifecycle_over_http(client, product, manufacturer, clock):
    order = await _create(client, product)
    oid = order["id"]

    clock.advance(minutes=5)
    resp = await client.post(f"{API}/orders/{oid}/assign", json={"manufacturer_id": str(manufacturer.id)})
    assert resp.status_code == 200
    assert resp.json()["status"] == "ASSIGNED"
    assert resp.json()["manufacturer"]["name"] == manufacturer.name
    assert resp.json()["urgency"] == "on-time"

    clock.advance(hours=30)
    resp = await client.post(f"{API}/orders/{oid}/notify")
    assert resp.status_code == 200
    assert resp.json()["status"] == "NOTIFIED"
    assert resp.json()["urgency"] == "approaching"

    clock.advance(minutes=5)
    resp = await client.post(
        f"{API}/orders/{oid}/ship",
        json={"carrier": "UPS", "tracking_number": "1Z999", "performed_by": "dock-2"},
    )
    assert resp.status_code == 200
    assert resp.json()["carrier"] == "UPS"
    assert resp.json()["urgency"] is None

    clock.advance(days=1)
    resp = await client.post(f"{API}/orders/{oid}/deliver", json={"performed_by": "carrier-webhook"})
    assert resp.status_code == 200

    detail = (await client.get(f"{API}/orders/{oid}")).json()
    assert detail["status"] == "DELIVERED"
    assert [a["action"] for a in detail["activity_logs"]] == [
        "ORDER_DELIVERED",
        "ORDER_SHIPPED",
        "ORDER_NOTIFIED",
        "ORDER_ASSIGNED",
        "ORDER_CREATED",
    ]
    assert sorted(e["type"] for e in detail["email_logs"]) == ["ORDER_CONFIRMATION", "SHIPPING_NOTIFICATION"]

    by_number = await client.get(f"{API}/orders/by-number/{detail['order_number']}")
    assert by_number.status_code == 200
    assert by_number.json()["id"] == oid


async def test_invalid_transition_is_409_with_reason(client, product):
    order = await _create(client, product)

    resp = await client.post(f"{API}/orders/{order['id']}/notify")

    assert resp.status_code == 409
    body = resp.json()
    assert body["type"] == "InvalidTransitionError"
    assert body["error"] == "order must be assigned before it can be notified"
    assert body["current_status"] == "RECEIVED"
    assert body["operation"] == "notify"


async def test_ship_without_tracking_is_400(client, product, manufacturer):
    order = await _create(client, product)
    await client.post(f"{API}/orders/{order['id']}/assign", json={"manufacturer_id": str(manufacturer.id)})

    resp = await client.post(f"{API}/orders/{order['id']}/ship", json={"carrier": "UPS"})

    assert resp.status_code == 400
    assert resp.json()["field"] == "tracking_number"
    detail = (await client.get(f"{API}/orders/{order['id']}")).json()
    assert detail["status"] == "ASSIGNED"
    assert detail["email_logs"] == []


async def test_unknown_order_is_404(client):
    resp = await client.get(f"{API}/orders/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["type"] == "NotFoundError"

    resp = await client.get(f"{API}/orders/by-number/FI-0000-9999")
    assert resp.status_code == 404


async def test_delay_and_escalate(client, product, manufacturer):
    order = await _create(client, product)
    oid = order["id"]
    await client.post(f"{API}/orders/{oid}/assign", json={"manufacturer_id": str(manufacturer.id)})

    resp = await client.post(f"{API}/orders/{oid}/delay")
    assert resp.status_code == 200
    body = resp.json()
    assert body["order"]["status"] == "DELAYED"
    assert body["order"]["priority"] == "URGENT"
    assert body["alert"]["type"] == "DELAY"

    resp = await client.post(f"{API}/orders/{oid}/escalate", json={"performed_by": "lead"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["order"]["status"] == "DELAYED"
    assert body["alert"]["type"] == "ESCALATION"
    assert body["alert"]["severity"] == "CRITICAL"


async def test_cancel_then_assign_is_rejected(client, product, manufacturer):
    order = await _create(client, product)
    resp = await client.post(f"{API}/orders/{order['id']}/cancel")
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"

    resp = await client.post(
        f"{API}/orders/{order['id']}/assign", json={"manufacturer_id": str(manufacturer.id)}
    )
    assert resp.status_code == 409


async def test_list_orders_filters_and_pages(client, product, manufacturer, clock):
    ids = []
    for i in range(3):
        clock.advance(minutes=1)
        ids.append((await _create(client, product, customer_name=f"Customer {i}"))["id"])
    await client.post(f"{API}/orders/{ids[0]}/assign", json={"manufacturer_id": str(manufacturer.id)})

    resp = await client.get(f"{API}/orders", params={"size": 2})
    body = resp.json()
    assert body["total"] == 3
    assert body["pages"] == 2
    assert len(body["items"]) == 2
    assert body["items"][0]["id"] == ids[2]

    resp = await client.get(f"{API}/orders", params={"status": "ASSIGNED"})
    assert [o["id"] for o in resp.json()["items"]] == [ids[0]]

    resp = await client.get(f"{API}/orders", params={"search": "customer 1"})
    assert [o["id"] for o in resp.json()["items"]] == [ids[1]]

    resp = await client.get(f"{API}/orders", params={"status": "LOST"})
    assert resp.status_code == 422


async def test_empty_order_list_has_one_page(client):
    body = (await client.get(f"{API}/orders")).json()
    assert body == {"items": [], "total": 0, "page": 1, "size": 20, "pages": 1}


async def test_estimated_ship_round_trips_as_utc(client, product, clock):
    eta = (clock.now + timedelta(days=3)).isoformat()
    body = await _create(client, product, estimated_ship=eta)
    assert body["estimated_ship"].startswith("2024-10-18T12:00:00")


async def test_list_orders_date_bounds_accept_naive_and_date_only(client, product, clock):
    created = {}
    for label, at in [
        ("before", datetime(2024, 9, 30, 23, 0, tzinfo=timezone.utc)),
        ("early", datetime(2024, 10, 5, 10, 0, tzinfo=timezone.utc)),
        ("late_on_last_day", datetime(2024, 10, 20, 23, 30, tzinfo=timezone.utc)),
        ("next_day", datetime(2024, 10, 21, 0, 30, tzinfo=timezone.utc)),
    ]:
        clock.set(at)
        created[label] = (await _create(client, product, customer_name=label))["id"]

    resp = await client.get(
        f"{API}/orders",
        params={"date_from": "2024-10-01T00:00:00", "date_to": "2024-10-20"},
    )
    assert resp.status_code == 200, resp.text
    assert [o["id"] for o in resp.json()["items"]] == [created["late_on_last_day"], created["early"]]

    resp = await client.get(f"{API}/orders", params={"date_from": "2024-10-21"})
    assert [o["id"] for o in resp.json()["items"]] == [created["next_day"]]

    resp = await client.get(f"{API}/orders", params={"date_to": "2024-10-05T10:00:00Z"})
    assert [o["id"] for o in resp.json()["items"]] == [created["early"], created["before"]]


async def test_list_orders_date_only_uses_business_timezone(client, product, clock, settings):
    chicago = settings.model_copy(update={"TIMEZONE": "America/Chicago"})
    app.dependency_overrides[get_settings] = lambda: chicago

    # 2024-10-20 23:30 in Chicago (CDT, UTC-5)
    clock.set(datetime(2024, 10, 21, 4, 30, tzinfo=timezone.utc))
    evening = (await _create(client, product))["id"]
    clock.set(datetime(2024, 10, 21, 5, 30, tzinfo=timezone.utc))
    await _create(client, product)

    resp = await client.get(f"{API}/orders", params={"date_to": "2024-10-20"})
    assert [o["id"] for o in resp.json()["items"]] == [evening]

    # naive datetimes are Chicago wall time
    resp = await client.get(f"{API}/orders", params={"date_from": "2024-10-20T23:45:00"})
    assert resp.json()["total"] == 1
    assert resp.json()["items"][0]["id"] != evening


async def test_list_orders_rejects_malformed_date(client):
    resp = await client.get(f"{API}/orders", params={"date_from": "last tuesday"})

    assert resp.status_code == 400
    assert resp.json()["field"] == "date_from"

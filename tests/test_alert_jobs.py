# tests/test_alert_jobs.py
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest

import app.jobs.scheduler as scheduler_module
from app.jobs.alert_jobs import scan_order_alerts
from app.models.order import OrderStatus
from app.services.order_store import OrderStore

from tests.factories import seed_order


@pytest.mark.asyncio
async def test_scan_job_creates_alerts_in_its_own_session(async_session_maker, session, product, manufacturer, clock):
    now = clock.now
    await seed_order(
        session, product, OrderStatus.ASSIGNED, created_at=now - timedelta(days=9),
        manufacturer=manufacturer, assigned_at=now - timedelta(days=8),
    )

    result = await scan_order_alerts(session_factory=async_session_maker, now=now)

    assert result["success"] is True
    assert result["created"] == 1

    async with async_session_maker() as check:
        assert await OrderStore(check).count_alerts() == 1


@pytest.mark.asyncio
async def test_scan_job_logs_failures_without_raising(caplog):
    @asynccontextmanager
    async def broken_session():
        raise RuntimeError("database unavailable")
        yield

    result = await scan_order_alerts(session_factory=broken_session)

    assert result["success"] is False
    assert "database unavailable" in result["error"]
    assert any("Order alert scan failed" in r.getMessage() for r in caplog.records)


def test_scheduler_module_is_not_shadowed_by_the_package():
    import app.jobs

    assert app.jobs.scheduler is scheduler_module
    assert callable(scheduler_module.register_jobs)


def test_scan_job_registered_only_when_enabled(monkeypatch):
    monkeypatch.setattr(scheduler_module.settings, "ALERT_SCAN_ENABLED", False)
    scheduler_module.register_jobs()
    assert scheduler_module.scheduler.get_job("scan_order_alerts") is None

    monkeypatch.setattr(scheduler_module.settings, "ALERT_SCAN_ENABLED", True)
    monkeypatch.setattr(scheduler_module.settings, "ALERT_SCAN_INTERVAL_MINUTES", 15)
    scheduler_module.register_jobs()
    try:
        job = scheduler_module.scheduler.get_job("scan_order_alerts")
        assert job is not None
        assert job.trigger.interval == timedelta(minutes=15)
    finally:
        scheduler_module.scheduler.remove_job("scan_order_alerts")

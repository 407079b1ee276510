from typing import Annotated, Callable
from datetime import datetime

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import get_db
from app.db_types import utc_now
from app.services.order_store import OrderStore
from app.services.order_lifecycle_service import OrderLifecycleService
from app.services.metrics_service import MetricsService
from app.services.alert_service import AlertService
from app.services.audit_service import AuditService
from app.services.manufacturer_service import ManufacturerService


Clock = Callable[[], datetime]


def get_clock() -> Clock:
    """Wall clock used by every service; tests override this dependency."""
    return utc_now


def get_store(db: Annotated[AsyncSession, Depends(get_db)]) -> OrderStore:
    return OrderStore(db)


def get_lifecycle_service(
    store: Annotated[OrderStore, Depends(get_store)],
    clock: Annotated[Clock, Depends(get_clock)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> OrderLifecycleService:
    return OrderLifecycleService(store, clock=clock, settings=settings)


def get_metrics_service(
    store: Annotated[OrderStore, Depends(get_store)],
    clock: Annotated[Clock, Depends(get_clock)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MetricsService:
    return MetricsService(store, clock=clock, settings=settings)


def get_alert_service(
    store: Annotated[OrderStore, Depends(get_store)],
    clock: Annotated[Clock, Depends(get_clock)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AlertService:
    return AlertService(store, clock=clock, settings=settings)


def get_audit_service(store: Annotated[OrderStore, Depends(get_store)]) -> AuditService:
    return AuditService(store)


def get_manufacturer_service(store: Annotated[OrderStore, Depends(get_store)]) -> ManufacturerService:
    return ManufacturerService(store)


Store = Annotated[OrderStore, Depends(get_store)]
ClockDep = Annotated[Clock, Depends(get_clock)]
Lifecycle = Annotated[OrderLifecycleService, Depends(get_lifecycle_service)]
Metrics = Annotated[MetricsService, Depends(get_metrics_service)]
Alerts = Annotated[AlertService, Depends(get_alert_service)]
Audit = Annotated[AuditService, Depends(get_audit_service)]
Catalog = Annotated[ManufacturerService, Depends(get_manufacturer_service)]

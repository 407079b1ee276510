# Services module
from app.services.order_store import OrderStore
from app.services.audit_service import AuditService
from app.services.notification_service import NotificationService
from app.services.metrics_service import MetricsService
from app.services.alert_service import AlertService
from app.services.order_lifecycle_service import OrderLifecycleService
from app.services.manufacturer_service import ManufacturerService

__all__ = [
    "OrderStore",
    "AuditService",
    "NotificationService",
    "MetricsService",
    "AlertService",
    "OrderLifecycleService",
    "ManufacturerService",
]

from app.models.manufacturer import Manufacturer, ManufacturerRating, ManufacturerStatus
from app.models.product import Product, ProductCategory
from app.models.order import Order, OrderStatus, OrderSource, OrderPriority, PRIORITY_RANK
from app.models.alert import Alert, AlertType, AlertSeverity, SEVERITY_RANK
from app.models.email_log import EmailLog, EmailType, EmailStatus
from app.models.activity_log import ActivityLog, ActivityAction

__all__ = [
    "Manufacturer",
    "ManufacturerRating",
    "ManufacturerStatus",
    "Product",
    "ProductCategory",
    "Order",
    "OrderStatus",
    "OrderSource",
    "OrderPriority",
    "PRIORITY_RANK",
    "Alert",
    "AlertType",
    "AlertSeverity",
    "SEVERITY_RANK",
    "EmailLog",
    "EmailType",
    "EmailStatus",
    "ActivityLog",
    "ActivityAction",
]

from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Orders & lifecycle
    orders,
    # Catalog
    manufacturers,
    # Alerts
    alerts,
    # Dashboard
    dashboard,
    # Email & activity logs
    logs,
    # Manufacturer portal
    portal,
)

api_router = APIRouter()


# ==================== Orders ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

# ==================== Manufacturers & Products ====================
api_router.include_router(
    manufacturers.router,
    prefix="/manufacturers",
    tags=["Manufacturers"]
)
api_router.include_router(
    manufacturers.products_router,
    prefix="/products",
    tags=["Products"]
)

# ==================== Alerts ====================
api_router.include_router(
    alerts.router,
    prefix="/alerts",
    tags=["Alerts"]
)

# ==================== Dashboard ====================
api_router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

# ==================== Logs ====================
api_router.include_router(
    logs.router,
    tags=["Logs"]
)

# ==================== Manufacturer Portal ====================
api_router.include_router(
    portal.router,
    prefix="/portal",
    tags=["Portal"]
)

from contextlib import asynccontextmanager
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.config import settings
from app.api.v1.router import api_router
from app.core.errors import FulfillmentError
from app.core.logging import setup_logging
from app.database import init_db, async_session_factory
from app.db_types import utc_now
from app.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler, get_job_status

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, create tables, run the scheduler for the app's lifetime."""
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    await init_db()
    start_scheduler()

    yield

    shutdown_scheduler()
    logger.info(f"{settings.APP_NAME} stopped")


OPENAPI_TAGS = [
    {"name": "Orders", "description": "Order intake and lifecycle: assign, notify, ship, deliver, delay, escalate, cancel"},
    {"name": "Manufacturers", "description": "Manufacturer directory and fulfillment performance"},
    {"name": "Products", "description": "Product catalog linked to manufacturers"},
    {"name": "Alerts", "description": "Delay, overdue and escalation alerts with resolution"},
    {"name": "Dashboard", "description": "Operational metrics and daily trends"},
    {"name": "Logs", "description": "Email and activity audit trail"},
    {"name": "Portal", "description": "Manufacturer-facing pending orders and shipping"},
]

FULL_API_DESCRIPTION = """
## Fulfillment Tracker API

Tracks customer orders from intake to delivery across external manufacturers.

### Order Lifecycle

`RECEIVED -> ASSIGNED -> NOTIFIED -> SHIPPED -> DELIVERED`, with `DELAYED`
and `CANCELLED` as side states. Every transition is a named operation and
writes one activity log entry.

### Errors

Domain errors return `{"error", "type", "path", "method"}` plus details.

| Status | Meaning |
|--------|---------|
| 400 | Input rejected before any change (`ValidationError`) |
| 404 | Order, manufacturer, product or alert not found |
| 409 | Transition not allowed from the current status, or a concurrent update won |
| 422 | Request body or query failed schema validation |
| 500 | Unexpected server error |
"""

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=FULL_API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(FulfillmentError)
async def fulfillment_exception_handler(request: Request, exc: FulfillmentError):
    """Map domain errors to their HTTP status."""
    error_detail = exc.to_dict()
    error_detail["path"] = str(request.url.path)
    error_detail["method"] = request.method

    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_detail)


# Global exception handler for anything the services did not anticipate
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return error information; the traceback is only included in DEBUG."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)

    error_detail = {
        "error": str(exc),
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    if settings.DEBUG:
        error_detail["traceback"] = traceback.format_exc()

    return JSONResponse(status_code=500, content=error_detail)


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe: database round trip plus the background jobs in the scheduler."""
    checks = {"database": "unknown", "scheduler": "running" if scheduler.running else "stopped"}
    healthy = True

    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except Exception as e:
        healthy = False
        checks["database"] = f"error: {e}"
        logger.warning(f"Health check failed to reach the database: {e}")

    payload = {
        "status": "healthy" if healthy else "unhealthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utc_now().isoformat(),
        "checks": checks,
        "jobs": get_job_status(),
    }
    if not healthy:
        return JSONResponse(status_code=503, content=payload)
    return payload


@app.get("/", tags=["Root"])
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
    }

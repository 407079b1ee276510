"""
Background Jobs Module

Handles scheduled tasks for:
- Overdue / delayed order alert scan

The scheduler instance lives in app.jobs.scheduler; it is not re-exported
here so the submodule name stays importable.
"""

from app.jobs.scheduler import start_scheduler, shutdown_scheduler
from app.jobs.alert_jobs import scan_order_alerts

__all__ = [
    "start_scheduler",
    "shutdown_scheduler",
    "scan_order_alerts",
]

"""
APScheduler Configuration

Background scheduler for the periodic overdue / delay alert scan. The scan
is registered only when ALERT_SCAN_ENABLED is set; otherwise the scheduler
runs with no jobs and alerts are raised only by API calls.
"""

import logging
from typing import Any, Dict, List

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from app.config import settings

logger = logging.getLogger(__name__)

SCAN_JOB_ID = 'scan_order_alerts'

jobstores = {
    'default': MemoryJobStore()
}

executors = {
    'default': AsyncIOExecutor(),
}

job_defaults = {
    'coalesce': True,  # a backlog of missed scans runs once
    'max_instances': 1,  # scans never overlap
    'misfire_grace_time': 60,
}

scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=settings.TIMEZONE,
)


def register_jobs():
    """Add the configured jobs to the scheduler."""
    from app.jobs.alert_jobs import scan_order_alerts

    if not settings.ALERT_SCAN_ENABLED:
        logger.info("Alert scan disabled; no background jobs registered")
        return

    scheduler.add_job(
        scan_order_alerts,
        'interval',
        minutes=settings.ALERT_SCAN_INTERVAL_MINUTES,
        id=SCAN_JOB_ID,
        name='Scan Orders for Overdue and Delay Alerts',
        replace_existing=True,
    )


def start_scheduler():
    if scheduler.running:
        return
    register_jobs()
    scheduler.start()
    for job in scheduler.get_jobs():
        logger.info(f"Job {job.id} scheduled ({job.trigger}), first run at {job.next_run_time}")
    logger.info("Background scheduler running")


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")


def get_job_status() -> List[Dict[str, Any]]:
    """Registered jobs with their trigger and next run, for the health endpoint."""
    status = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, 'next_run_time', None)
        status.append({
            'id': job.id,
            'name': job.name,
            'trigger': str(job.trigger),
            'next_run_time': next_run.isoformat() if next_run else None,
        })
    return status

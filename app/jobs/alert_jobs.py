"""
Alert Jobs

Periodic policy scan:
- ASSIGNED/NOTIFIED orders past the fulfillment threshold -> OVERDUE alert + reminder email
- DELAYED orders past the delay threshold -> DELAY alert
"""

import logging
from typing import Dict, Any, Optional
from datetime import datetime, timezone

from app.database import get_db_session
from app.services.alert_service import AlertService
from app.services.order_store import OrderStore

logger = logging.getLogger(__name__)


async def scan_order_alerts(session_factory=None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Run AlertService.scan in its own session.

    Failures are logged and reported in the result, never raised, so one bad
    run does not stop the scheduler.
    """
    logger.info("Starting order alert scan...")
    start_time = datetime.now(timezone.utc)
    factory = session_factory or get_db_session

    try:
        async with factory() as session:
            service = AlertService(OrderStore(session))
            alerts = await service.scan(now=now)

        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(f"Order alert scan completed: {len(alerts)} alert(s) created in {duration:.2f}s")
        return {
            "success": True,
            "created": len(alerts),
            "duration_seconds": duration,
        }
    except Exception as e:
        logger.error(f"Order alert scan failed: {e}", exc_info=True)
        return {
            "success": False,
            "created": 0,
            "error": str(e),
        }

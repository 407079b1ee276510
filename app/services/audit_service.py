from typing import Optional, List, Tuple
import uuid
import logging

from app.models.activity_log import ActivityLog, ActivityAction
from app.services.order_store import OrderStore


logger = logging.getLogger(__name__)


class AuditService:
    """
    Audit sink: appends ActivityLog entries for every lifecycle transition.
    Entries are never updated or deleted.
    """

    def __init__(self, store: OrderStore):
        self.store = store

    def log(
        self,
        action: ActivityAction,
        details: str,
        order_id: Optional[uuid.UUID] = None,
        performed_by: Optional[str] = None,
        created_at=None,
    ) -> ActivityLog:
        """
        Stage an activity log entry in the current unit of work.

        Args:
            action: Action tag (ORDER_SHIPPED, ALERT_RESOLVED, ...)
            details: Human-readable description
            order_id: Linked order, if any
            performed_by: Acting user name or email, if known
            created_at: Entry timestamp (defaults to now)

        Returns:
            The staged ActivityLog entry
        """
        entry = ActivityLog(
            action=action.value,
            details=details,
            order_id=order_id,
            performed_by=performed_by,
        )
        if created_at is not None:
            entry.created_at = created_at
        self.store.add(entry)
        logger.debug(f"[ACTIVITY] {action.value}: {details}")
        return entry

    async def list_activity(
        self,
        order_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[ActivityLog], int]:
        """Activity entries, newest first."""
        return await self.store.list_activity_logs(
            order_id=order_id,
            action=action,
            skip=skip,
            limit=limit,
        )

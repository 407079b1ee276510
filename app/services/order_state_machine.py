"""
Order State Machine

This module is the SINGLE SOURCE OF TRUTH for order status transitions.
Every lifecycle operation is checked here before the lifecycle service
mutates anything.

    RECEIVED -> ASSIGNED -> NOTIFIED -> SHIPPED -> DELIVERED
    CANCELLED and DELAYED are side states; DELAYED can still ship.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, FrozenSet

from app.core.enum_utils import get_enum_value
from app.core.errors import InvalidTransitionError
from app.models.order import OrderStatus


# =============================================================================
# OPERATIONS
# =============================================================================

class LifecycleOperation(str, Enum):
    """Named lifecycle operations (never a free-form status write)."""
    ASSIGN = "assign"
    NOTIFY = "notify"
    SHIP = "ship"
    DELIVER = "deliver"
    MARK_DELAYED = "mark_delayed"
    ESCALATE = "escalate"
    CANCEL = "cancel"


TERMINAL_STATUSES: FrozenSet[str] = frozenset({
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
})

_OPEN_STATUSES: FrozenSet[str] = frozenset(
    s.value for s in OrderStatus if s.value not in TERMINAL_STATUSES
)


# =============================================================================
# TRANSITION RULES
# =============================================================================

# Format: operation -> statuses it may be invoked from
ALLOWED_FROM: Dict[LifecycleOperation, FrozenSet[str]] = {
    LifecycleOperation.ASSIGN: frozenset({OrderStatus.RECEIVED.value}),
    LifecycleOperation.NOTIFY: frozenset({OrderStatus.ASSIGNED.value}),
    LifecycleOperation.SHIP: frozenset({
        OrderStatus.ASSIGNED.value,
        OrderStatus.NOTIFIED.value,
        OrderStatus.DELAYED.value,
    }),
    LifecycleOperation.DELIVER: frozenset({OrderStatus.SHIPPED.value}),
    LifecycleOperation.MARK_DELAYED: frozenset({
        OrderStatus.ASSIGNED.value,
        OrderStatus.NOTIFIED.value,
    }),
    LifecycleOperation.ESCALATE: _OPEN_STATUSES,
    LifecycleOperation.CANCEL: _OPEN_STATUSES,
}

# Resulting status; None means the status is left unchanged
TARGET_STATUS: Dict[LifecycleOperation, Optional[str]] = {
    LifecycleOperation.ASSIGN: OrderStatus.ASSIGNED.value,
    LifecycleOperation.NOTIFY: OrderStatus.NOTIFIED.value,
    LifecycleOperation.SHIP: OrderStatus.SHIPPED.value,
    LifecycleOperation.DELIVER: OrderStatus.DELIVERED.value,
    LifecycleOperation.MARK_DELAYED: OrderStatus.DELAYED.value,
    LifecycleOperation.ESCALATE: None,
    LifecycleOperation.CANCEL: OrderStatus.CANCELLED.value,
}

# User-facing reasons when the status precondition fails
FAILURE_MESSAGES: Dict[LifecycleOperation, str] = {
    LifecycleOperation.ASSIGN: "only received orders can be assigned to a manufacturer",
    LifecycleOperation.NOTIFY: "order must be assigned before it can be notified",
    LifecycleOperation.SHIP: "order must be assigned, notified or delayed before it can be shipped",
    LifecycleOperation.DELIVER: "order must be shipped before it can be delivered",
    LifecycleOperation.MARK_DELAYED: "only assigned or notified orders can be marked delayed",
    LifecycleOperation.ESCALATE: "delivered or cancelled orders cannot be escalated",
    LifecycleOperation.CANCEL: "delivered or cancelled orders cannot be cancelled",
}

# Format: current_status -> operations accepted from it
ORDER_TRANSITIONS: Dict[str, List[LifecycleOperation]] = {
    status.value: [op for op in LifecycleOperation if status.value in ALLOWED_FROM[op]]
    for status in OrderStatus
}

# Lifecycle timestamps in the order they must be stamped
TIMESTAMP_CHAIN: List[str] = [
    "created_at",
    "assigned_at",
    "notified_at",
    "shipped_at",
    "delivered_at",
]

TIMESTAMP_FOR_OPERATION: Dict[LifecycleOperation, str] = {
    LifecycleOperation.ASSIGN: "assigned_at",
    LifecycleOperation.NOTIFY: "notified_at",
    LifecycleOperation.SHIP: "shipped_at",
    LifecycleOperation.DELIVER: "delivered_at",
}


def _check_table() -> None:
    for op in LifecycleOperation:
        if op not in ALLOWED_FROM or op not in TARGET_STATUS or op not in FAILURE_MESSAGES:
            raise RuntimeError(f"Lifecycle operation {op.value} missing from transition table")
    for status in OrderStatus:
        if status.value not in ORDER_TRANSITIONS:
            raise RuntimeError(f"Order status {status.value} missing from transition table")
        if status.value not in TERMINAL_STATUSES and not ORDER_TRANSITIONS[status.value]:
            raise RuntimeError(f"Non-terminal status {status.value} has no outgoing operation")


_check_table()


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def can_apply(current_status: str, operation: LifecycleOperation) -> bool:
    """Check if an operation is allowed from the current status."""
    return get_enum_value(current_status) in ALLOWED_FROM[operation]


def get_allowed_operations(current_status: str) -> List[LifecycleOperation]:
    """Operations that may be invoked from the current status."""
    return ORDER_TRANSITIONS.get(get_enum_value(current_status), [])


def is_terminal(status: str) -> bool:
    """Is this a terminal (final) state?"""
    return get_enum_value(status) in TERMINAL_STATUSES


def validate_operation(current_status: str, operation: LifecycleOperation) -> Optional[str]:
    """
    Validate a lifecycle operation against the current status.

    Returns the target status (None when the status does not change).

    Raises:
        InvalidTransitionError: If the operation is not allowed
    """
    current_status = get_enum_value(current_status)
    if not can_apply(current_status, operation):
        raise InvalidTransitionError(
            current_status=current_status,
            operation=operation.value,
            reason=FAILURE_MESSAGES[operation],
        )
    return TARGET_STATUS[operation]


def stamp_time(order, field: str, now: datetime) -> datetime:
    """
    Timestamp for `field`, never earlier than any earlier-stage stamp.

    Keeps created <= assigned <= notified <= shipped <= delivered even when
    the clock passed in is behind a previously written stamp.
    """
    stamp = now
    for earlier in TIMESTAMP_CHAIN[:TIMESTAMP_CHAIN.index(field)]:
        value = getattr(order, earlier, None)
        if value is not None and value > stamp:
            stamp = value
    return stamp


# =============================================================================
# TRANSITION EXECUTOR
# =============================================================================

def apply_transition(order, operation: LifecycleOperation, now: datetime) -> Optional[str]:
    """
    Move an order through a lifecycle operation.

    This function:
    1. Validates the operation is allowed from the current status
    2. Updates the status
    3. Stamps the lifecycle timestamp for the operation

    Companion fields (manufacturer, carrier, priority) are set by the caller.

    Returns:
        The previous status

    Raises:
        InvalidTransitionError: If the operation is not allowed
    """
    previous = order.status
    target = validate_operation(previous, operation)

    if target is not None:
        order.status = target

    field = TIMESTAMP_FOR_OPERATION.get(operation)
    if field is not None:
        setattr(order, field, stamp_time(order, field, now))

    return previous

"""
Enum Utilities for VARCHAR-based Status Fields

STORAGE CONVENTION:
━━━━━━━━━━━━━━━━━━━
• Database: VARCHAR(30) - NOT PostgreSQL ENUM
• SQLAlchemy: String(30) with Mapped[str]
• Python: closed `str, Enum` classes for status, source, priority,
  severity, rating
• Case: All enum values stored in UPPERCASE

Callers may pass either the enum member or the stored string; both
normalise to the stored string before comparison.
"""

from enum import Enum
from typing import Any, Optional


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(OrderStatus.RECEIVED)
        'RECEIVED'
        >>> get_enum_value("RECEIVED")
        'RECEIVED'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)

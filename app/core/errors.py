"""
Domain errors raised by the fulfillment services.

The API layer maps each class to an HTTP status in app.main; services never
retry and never partially apply a change before raising one of these.
"""
from typing import Any, Dict, Optional


class FulfillmentError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "type": type(self).__name__}


class NotFoundError(FulfillmentError):
    """Referenced order / manufacturer / product / alert does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"entity": self.entity, "entity_id": str(self.entity_id)})
        return data


class InvalidTransitionError(FulfillmentError):
    """Lifecycle precondition not met for the requested operation."""

    status_code = 409

    def __init__(self, current_status: str, operation: str, reason: str):
        super().__init__(reason)
        self.current_status = current_status
        self.operation = operation
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "current_status": self.current_status,
            "operation": self.operation,
        })
        return data


class ValidationError(FulfillmentError):
    """Malformed input, rejected before any state mutation."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class ConcurrentModificationError(FulfillmentError):
    """A concurrent write won the race; refetch and decide whether to retry."""

    status_code = 409

    def __init__(self, entity: str, entity_id: Any = None):
        super().__init__(f"{entity} was modified concurrently; reload and retry")
        self.entity = entity
        self.entity_id = entity_id

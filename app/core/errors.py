"""
Domain errors for the order lifecycle.

Every error carries a stable ``code``, the HTTP status the API layer should
answer with, and a ``context`` dict that is rendered as ``details`` in the
error envelope.
"""
from typing import Any, Optional


class OrderServiceError(Exception):
    code = "order_service_error"
    status_code = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(OrderServiceError):
    """Malformed or out-of-range input that reached the core."""
    code = "validation_error"
    status_code = 400


class ReferenceNotFoundError(ValidationError):
    code = "reference_not_found"

    def __init__(self, entity: str, entity_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"{entity.capitalize()} {entity_id} not found",
            entity=entity,
            entity_id=entity_id,
        )


class ItemNotFoundError(ReferenceNotFoundError):
    code = "item_not_found"

    def __init__(self, menu_item_id: int):
        super().__init__("menu item", menu_item_id)
        self.menu_item_id = menu_item_id


class InsufficientStockError(OrderServiceError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(self, menu_item_id: int, name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for item {name}",
            menu_item_id=menu_item_id,
            requested=requested,
            available=available,
        )
        self.menu_item_id = menu_item_id


class ForcedFailureError(OrderServiceError):
    """Raised by an injected fault to exercise the rollback path."""
    code = "forced_failure"
    status_code = 400


class DuplicatePaymentError(OrderServiceError):
    code = "duplicate_payment"
    status_code = 409

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} already has a payment", order_id=order_id)


class StatusTransitionError(OrderServiceError):
    code = "invalid_status_transition"
    status_code = 409

    def __init__(self, message: str, current_status: Any, requested_status: Any = None):
        super().__init__(
            message,
            current_status=getattr(current_status, "value", current_status),
            requested_status=getattr(requested_status, "value", requested_status),
        )


class NotFoundError(OrderServiceError):
    code = "not_found"
    status_code = 404


class PersistenceError(OrderServiceError):
    """Underlying store failure (constraint violation, lost connection)."""
    code = "persistence_error"
    status_code = 500

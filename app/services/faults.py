"""
Fault injection points for the order processor.

Only test harnesses (or a process started with ENABLE_FAULT_INJECTION) hand a
fault injector to the processor; production requests never carry one.
"""
from typing import Protocol

from app.core.errors import ForcedFailureError
from app.models.order import Order


class FaultInjector(Protocol):

    async def after_reservations(self, order: Order) -> None:
        """Called once every line item is reserved, before payment is recorded."""


class ForcedFailure:
    """Always aborts the unit of work, exactly like a genuine failure would."""

    message = "Forced failure to demonstrate rollback"

    async def after_reservations(self, order: Order) -> None:
        raise ForcedFailureError(self.message, order_number=order.order_number)

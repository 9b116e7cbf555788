"""
Later-stage order mutations: status transitions, driver assignment and
cancellation. Each call is its own transaction with the order row locked.
"""
import logging
from typing import Any, Optional

from tortoise import timezone
from tortoise.transactions import in_transaction

from app.core.errors import NotFoundError, ReferenceNotFoundError, StatusTransitionError
from app.events.outbox_utility import create_outbox_event
from app.models.customer import DeliveryPerson
from app.models.order import Order, OrderStatus
from app.services.tracking_log import StatusTrackingLog

log = logging.getLogger(__name__)

# Forward order of the delivery pipeline. Stages may be skipped, never revisited.
STATUS_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

CANCELLED_BY_USER = "Order cancelled by user"

_UNSET: Any = object()


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if new == OrderStatus.CANCELLED or new == current:
        return True
    return STATUS_SEQUENCE.index(new) > STATUS_SEQUENCE.index(current)


class OrderStatusUpdater:

    def __init__(self, tracking: StatusTrackingLog, connection_name: Optional[str] = None):
        self.tracking = tracking
        self.connection_name = connection_name

    async def update_status(
        self,
        order_id: int,
        new_status: Optional[OrderStatus] = None,
        *,
        special_instructions: Optional[str] = _UNSET,
        delivery_person_id: Optional[int] = _UNSET,
        location: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Applies a status change and/or field updates to a non-terminal order.

        A tracking event is appended only when the status actually changes.
        Omitted keyword fields are left alone; passing None clears them.
        """
        async with in_transaction(self.connection_name) as conn:
            order = await self._lock_order(order_id, conn)
            old_status = order.status

            if old_status in TERMINAL_STATUSES:
                raise StatusTransitionError(
                    f"Order is already in a final state: {old_status.value}. It cannot be updated.",
                    old_status,
                    new_status,
                )
            if new_status is not None and not can_transition(old_status, new_status):
                raise StatusTransitionError(
                    f"Cannot move order from {old_status.value} back to {new_status.value}",
                    old_status,
                    new_status,
                )

            update_fields = ["updated_at"]
            if special_instructions is not _UNSET:
                order.special_instructions = special_instructions
                update_fields.append("special_instructions")
            if delivery_person_id is not _UNSET:
                if delivery_person_id is not None and not await DeliveryPerson.filter(
                    id=delivery_person_id
                ).using_db(conn).exists():
                    raise ReferenceNotFoundError("delivery person", delivery_person_id)
                order.delivery_person_id = delivery_person_id
                update_fields.append("delivery_person_id")

            changed = new_status is not None and new_status != old_status
            if changed:
                order.status = new_status
                update_fields.append("status")
                if new_status == OrderStatus.DELIVERED and order.actual_delivery_time is None:
                    order.actual_delivery_time = timezone.now()
                    update_fields.append("actual_delivery_time")

            await order.save(update_fields=update_fields, using_db=conn)

            if changed:
                await self.tracking.append(
                    order.id,
                    new_status,
                    notes=notes,
                    location=location,
                    latitude=latitude,
                    longitude=longitude,
                    conn=conn,
                )
                await self._emit_status_event(order, old_status, notes, conn)
                log.info("Order %s moved %s -> %s", order.order_number, old_status.value, new_status.value)

        return order

    async def cancel(self, order_id: int, notes: str = CANCELLED_BY_USER) -> Order:
        """Forces CANCELLED from any non-terminal status."""
        async with in_transaction(self.connection_name) as conn:
            order = await self._lock_order(order_id, conn)
            old_status = order.status
            if old_status in TERMINAL_STATUSES:
                raise StatusTransitionError(
                    "Cannot cancel order that is already delivered or cancelled",
                    old_status,
                    OrderStatus.CANCELLED,
                )

            order.status = OrderStatus.CANCELLED
            await order.save(update_fields=["status", "updated_at"], using_db=conn)
            await self.tracking.append(order.id, OrderStatus.CANCELLED, notes=notes, conn=conn)
            await self._emit_status_event(order, old_status, notes, conn)

        log.info("Order %s cancelled (was %s)", order.order_number, old_status.value)
        return order

    async def _lock_order(self, order_id: int, conn: Any) -> Order:
        # FOR UPDATE is skipped on backends without row locks (SQLite)
        order = await Order.filter(id=order_id).using_db(conn).select_for_update().first()
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", order_id=order_id)
        return order

    async def _emit_status_event(self, order: Order, old_status: OrderStatus, notes: Optional[str], conn: Any):
        event_type = (
            "order.cancelled.v1" if order.status == OrderStatus.CANCELLED else "order.status_changed.v1"
        )
        await create_outbox_event(
            aggregate_type="order",
            aggregate_id=order.id,
            event_type=event_type,
            payload={
                "order_id": order.id,
                "order_number": order.order_number,
                "user_id": order.user_id,
                "old_status": old_status.value,
                "new_status": order.status.value,
                "notes": notes,
            },
            conn=conn,
        )

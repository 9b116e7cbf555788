"""
Transactional order processor.

Creates an order, reserves stock for each line, records the payment and
writes the status history as ONE unit of work. Either everything commits or
nothing does: a failure at any step (bad reference, short stock, injected
fault, store error) rolls back the header, the line items, every stock
decrement, the payment, the tracking events and the outbox rows.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.transactions import in_transaction

from app.core.config import ORDER_NUMBER_MAX_ATTEMPTS
from app.core.errors import OrderServiceError, PersistenceError
from app.events.outbox_utility import create_outbox_event
from app.models.order import Order, OrderItem, OrderStatus
from app.models.payment import Payment, PaymentMethod
from app.services.faults import FaultInjector
from app.services.identifiers import new_order_number
from app.services.inventory_ledger import InventoryLedger
from app.services.order_builder import CartLine, FeeInputs, OrderAggregate, OrderAggregateBuilder
from app.services.payment_recorder import PaymentRecorder
from app.services.tracking_log import StatusTrackingLog

log = logging.getLogger(__name__)


@dataclass
class CreateOrderCommand:
    user_id: int
    restaurant_id: int
    address_id: int
    items: List[CartLine]
    payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD
    fees: FeeInputs = field(default_factory=FeeInputs)
    special_instructions: Optional[str] = None


@dataclass
class OrderConfirmation:
    order: Order
    items: List[OrderItem]
    payment: Payment


class _OrderNumberTaken(Exception):
    """The generated order number hit the unique index; the unit of work is retried."""


class OrderProcessor:

    def __init__(
        self,
        builder: OrderAggregateBuilder,
        ledger: InventoryLedger,
        payments: PaymentRecorder,
        tracking: StatusTrackingLog,
        connection_name: Optional[str] = None,
        max_order_number_attempts: int = ORDER_NUMBER_MAX_ATTEMPTS,
    ):
        self.builder = builder
        self.ledger = ledger
        self.payments = payments
        self.tracking = tracking
        self.connection_name = connection_name
        self.max_order_number_attempts = max_order_number_attempts

    async def create_order(
        self, command: CreateOrderCommand, faults: Optional[FaultInjector] = None
    ) -> OrderConfirmation:
        """
        Runs the whole order creation sequence in one transaction and returns
        only after commit. Domain errors propagate unchanged (after rollback);
        store errors are wrapped in PersistenceError. Nothing is retried except
        an order number collision, which says nothing about the request itself.
        """
        for attempt in range(1, self.max_order_number_attempts + 1):
            try:
                return await self._create_once(command, faults)
            except _OrderNumberTaken:
                log.warning(
                    "Order number collision for user %s (attempt %s/%s), retrying",
                    command.user_id, attempt, self.max_order_number_attempts,
                )
        raise PersistenceError(
            "Could not allocate a unique order number",
            attempts=self.max_order_number_attempts,
        )

    async def _create_once(self, command: CreateOrderCommand, faults: Optional[FaultInjector]) -> OrderConfirmation:
        try:
            async with in_transaction(self.connection_name) as conn:
                # 1. Resolve references, snapshot prices, compute totals (read-only)
                aggregate = await self.builder.build(
                    command.user_id,
                    command.restaurant_id,
                    command.address_id,
                    command.items,
                    command.fees,
                    command.special_instructions,
                    conn=conn,
                )

                # 2. Header in PENDING, plus the one initial tracking event
                order = await self._insert_header(aggregate, conn)
                await self.tracking.append(order.id, OrderStatus.PENDING, notes="Order received", conn=conn)

                # 3. Reserve stock line by line, in input order
                items = []
                for line in aggregate.lines:
                    await self.ledger.try_reserve(line.menu_item_id, line.quantity, conn)
                    items.append(await OrderItem.create(
                        order=order,
                        menu_item_id=line.menu_item_id,
                        quantity=line.quantity,
                        price_at_time=line.price_at_time,
                        using_db=conn,
                    ))

                # 4. Test-only abort point
                if faults is not None:
                    await faults.after_reservations(order)

                # 5. Payment for the frozen grand total, then CONFIRMED
                payment = await self.payments.record(
                    order.id, aggregate.totals.total_amount, command.payment_method, conn
                )
                order.status = OrderStatus.CONFIRMED
                await order.save(update_fields=["status", "updated_at"], using_db=conn)
                await self.tracking.append(order.id, OrderStatus.CONFIRMED, notes="Payment completed", conn=conn)

                # 6. Notification goes out only if this commits
                await create_outbox_event(
                    aggregate_type="order",
                    aggregate_id=order.id,
                    event_type="order.confirmed.v1",
                    payload={
                        "order_id": order.id,
                        "order_number": order.order_number,
                        "user_id": order.user_id,
                        "restaurant_id": order.restaurant_id,
                        "total_amount": str(aggregate.totals.total_amount),
                        "payment_method": command.payment_method.value,
                        "transaction_id": payment.transaction_id,
                        "items": [
                            {"menu_item_id": line.menu_item_id, "quantity": line.quantity}
                            for line in aggregate.lines
                        ],
                    },
                    conn=conn,
                )
        except (OrderServiceError, _OrderNumberTaken) as exc:
            log.info("Order creation rolled back for user %s: %s", command.user_id, exc)
            raise
        except BaseORMException as exc:
            log.error("Order creation rolled back for user %s on store error: %s", command.user_id, exc)
            raise PersistenceError("Order could not be stored", reason=str(exc)) from exc

        log.info(
            "Order %s committed: %s line(s), total %s, payment %s",
            order.order_number, len(items), order.total_amount, payment.transaction_id,
        )
        return OrderConfirmation(order=order, items=items, payment=payment)

    async def _insert_header(self, aggregate: OrderAggregate, conn: Any) -> Order:
        totals = aggregate.totals
        try:
            return await Order.create(
                order_number=new_order_number(),
                user_id=aggregate.user_id,
                restaurant_id=aggregate.restaurant_id,
                address_id=aggregate.address_id,
                status=OrderStatus.PENDING,
                subtotal=totals.subtotal,
                delivery_fee=totals.delivery_fee,
                tax=totals.tax,
                discount=totals.discount,
                total_amount=totals.total_amount,
                special_instructions=aggregate.special_instructions,
                estimated_delivery_time=aggregate.estimated_delivery_time,
                using_db=conn,
            )
        except IntegrityError as exc:
            # SQLite and Postgres both name the column or its index in the message
            if "order_number" in str(exc):
                raise _OrderNumberTaken() from exc
            raise

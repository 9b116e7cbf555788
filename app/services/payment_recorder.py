import logging
from decimal import Decimal
from typing import Any

from tortoise.exceptions import IntegrityError

from app.core.errors import DuplicatePaymentError
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.services.identifiers import new_transaction_id

log = logging.getLogger(__name__)


class PaymentRecorder:
    """
    Writes the single payment row for an order.

    Settlement is simulated: the payment is stored as COMPLETED straight away.
    The caller owns the transaction and has already checked that ``amount``
    is the order's grand total.
    """

    async def record(self, order_id: int, amount: Decimal, method: PaymentMethod, conn: Any) -> Payment:
        if await Payment.filter(order_id=order_id).using_db(conn).exists():
            raise DuplicatePaymentError(order_id)

        try:
            payment = await Payment.create(
                order_id=order_id,
                amount=amount,
                payment_method=method,
                transaction_id=new_transaction_id(),
                status=PaymentStatus.COMPLETED,
                using_db=conn,
            )
        except IntegrityError as exc:
            # A concurrent writer won the unique index on payments.order_id
            raise DuplicatePaymentError(order_id) from exc

        log.info("Payment %s recorded for order %s (%s)", payment.transaction_id, order_id, amount)
        return payment

from enum import Enum
from tortoise import fields, models


class PaymentMethod(str, Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    UPI = "UPI"
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
    WALLET = "WALLET"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Payment(models.Model):
    id = fields.IntField(primary_key=True)
    # One-to-one link: the unique constraint is what guarantees a single payment per order
    order = fields.OneToOneField("models.Order", related_name="payment")
    amount = fields.DecimalField(max_digits=14, decimal_places=2)
    payment_method = fields.CharEnumField(PaymentMethod)
    transaction_id = fields.CharField(max_length=100, unique=True)
    status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "payments"
        indexes = [
            ("status",),
        ]

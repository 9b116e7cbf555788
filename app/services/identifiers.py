import secrets
import string
import uuid

ORDER_NUMBER_PREFIX = "ORD-"
ORDER_NUMBER_LENGTH = 7
TRANSACTION_ID_PREFIX = "TXN-"

_ALPHABET = string.ascii_uppercase + string.digits


def new_order_number() -> str:
    """Human-readable order number, e.g. ``ORD-7K2Q9ZD``.

    The suffix comes from a CSPRNG but is short, so the unique index on
    ``orders.order_number`` stays the real guard; the processor retries on a clash.
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(ORDER_NUMBER_LENGTH))
    return f"{ORDER_NUMBER_PREFIX}{suffix}"


def new_transaction_id() -> str:
    return f"{TRANSACTION_ID_PREFIX}{uuid.uuid4().hex.upper()}"

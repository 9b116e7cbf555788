# app/models/__init__.py
from .customer import Address, DeliveryPerson, User
from .order import MenuItem, Order, OrderItem, OrderStatus, Restaurant
from .outbox import OutboxEvent
from .payment import Payment, PaymentMethod, PaymentStatus
from .processed_event import ProcessedEvent
from .tracking import OrderTracking

# Export all models
__all__ = [
    "Address",
    "DeliveryPerson",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderTracking",
    "OutboxEvent",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "ProcessedEvent",
    "Restaurant",
    "User",
]

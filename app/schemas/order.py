from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.order import MenuItem, Order, OrderItem, OrderStatus
from app.models.payment import Payment, PaymentMethod
from app.models.tracking import OrderTracking
from app.services.order_builder import CartLine, FeeInputs, to_money
from app.services.order_processor import CreateOrderCommand


def _money(value) -> str:
    # Decimal columns can come back normalised (e.g. 1E+2); always render 2dp
    return f"{to_money(value):.2f}"


class OrderItemRequest(BaseModel):
    """Schema for a single item in the order request."""
    menu_item_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0, le=999, description="Units to order (1-999).")
    price: Optional[Decimal] = Field(
        None, gt=0, le=Decimal("9999.99"), description="Price shown to the customer; must match the catalog."
    )


class CreateOrderRequest(BaseModel):
    """Schema for the full order placement request body."""
    user_id: int = Field(..., gt=0)
    restaurant_id: int = Field(..., gt=0)
    address_id: int = Field(..., gt=0)
    items: List[OrderItemRequest] = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD
    delivery_fee: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    tax: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    discount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    special_instructions: Optional[str] = Field(None, max_length=500)
    # Only honoured when the process runs with ENABLE_FAULT_INJECTION
    simulate_failure: bool = False

    def to_command(self) -> CreateOrderCommand:
        return CreateOrderCommand(
            user_id=self.user_id,
            restaurant_id=self.restaurant_id,
            address_id=self.address_id,
            items=[CartLine(i.menu_item_id, i.quantity, i.price) for i in self.items],
            payment_method=self.payment_method,
            fees=FeeInputs(delivery_fee=self.delivery_fee, tax=self.tax, discount=self.discount),
            special_instructions=self.special_instructions,
        )


class OrderUpdateRequest(BaseModel):
    """Schema for PATCHing an order. Omitted fields are left untouched."""
    status: Optional[OrderStatus] = None
    special_instructions: Optional[str] = Field(None, max_length=500)
    delivery_person_id: Optional[int] = Field(None, gt=0)
    location: Optional[str] = Field(None, max_length=200)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = Field(None, max_length=500)


class OrderItemResponse(BaseModel):
    """Schema for an item inside the detailed order response."""
    id: int
    menu_item_id: int
    name: Optional[str] = None
    quantity: int
    price_at_time: str  # Use string for Decimal type serialization

    @classmethod
    def from_model(cls, item: OrderItem, name: Optional[str] = None) -> "OrderItemResponse":
        return cls(
            id=item.id,
            menu_item_id=item.menu_item_id,
            name=name,
            quantity=item.quantity,
            price_at_time=_money(item.price_at_time),
        )


class PaymentResponse(BaseModel):
    id: int
    order_id: int
    amount: str
    payment_method: PaymentMethod
    transaction_id: str
    status: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, payment: Payment) -> "PaymentResponse":
        return cls(
            id=payment.id,
            order_id=payment.order_id,
            amount=_money(payment.amount),
            payment_method=payment.payment_method,
            transaction_id=payment.transaction_id,
            status=payment.status.value,
            created_at=payment.created_at,
        )


class TrackingEventResponse(BaseModel):
    id: int
    status: OrderStatus
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_model(cls, event: OrderTracking) -> "TrackingEventResponse":
        return cls(
            id=event.id,
            status=event.status,
            location=event.location,
            latitude=event.latitude,
            longitude=event.longitude,
            notes=event.notes,
            timestamp=event.timestamp,
        )


class OrderResponse(BaseModel):
    """Schema for order information, optionally with nested relations."""
    id: int
    order_number: str
    user_id: int
    restaurant_id: int
    address_id: int
    delivery_person_id: Optional[int] = None
    status: OrderStatus
    subtotal: str
    delivery_fee: str
    tax: str
    discount: str
    total_amount: str
    special_instructions: Optional[str] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: Optional[List[OrderItemResponse]] = None
    payment: Optional[PaymentResponse] = None
    tracking: Optional[List[TrackingEventResponse]] = None

    @classmethod
    def from_model(
        cls,
        order: Order,
        items: Optional[List[OrderItem]] = None,
        payment: Optional[Payment] = None,
        tracking: Optional[List[OrderTracking]] = None,
    ) -> "OrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            restaurant_id=order.restaurant_id,
            address_id=order.address_id,
            delivery_person_id=order.delivery_person_id,
            status=order.status,
            subtotal=_money(order.subtotal),
            delivery_fee=_money(order.delivery_fee),
            tax=_money(order.tax),
            discount=_money(order.discount),
            total_amount=_money(order.total_amount),
            special_instructions=order.special_instructions,
            estimated_delivery_time=order.estimated_delivery_time,
            actual_delivery_time=order.actual_delivery_time,
            created_at=order.created_at,
            items=None if items is None else [_item_response(i) for i in items],
            payment=None if payment is None else PaymentResponse.from_model(payment),
            tracking=None if tracking is None else [TrackingEventResponse.from_model(t) for t in tracking],
        )


def _item_response(item: OrderItem) -> OrderItemResponse:
    # An unfetched FK comes back as a lazy query, not a MenuItem
    menu = getattr(item, "menu_item", None)
    name = menu.name if isinstance(menu, MenuItem) else None
    return OrderItemResponse.from_model(item, name=name)


class OrderConfirmationResponse(BaseModel):
    order: OrderResponse
    payment: PaymentResponse


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

"""
Assembles an order header and its line items from a cart.

The builder only reads. It resolves every reference, snapshots catalog prices
and computes the money fields; persisting the result is the order processor's
job.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional, Sequence

from tortoise import timezone

from app.core.config import DELIVERY_ETA_MINUTES
from app.core.errors import ReferenceNotFoundError, ValidationError
from app.models.customer import Address, User
from app.models.order import MenuItem, Restaurant

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value the fee columns (DecimalField(max_digits=10, decimal_places=2)) hold
MAX_FEE = Decimal("99999999.99")


def to_money(value: Any) -> Decimal:
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError("Amount is not a valid money value", value=str(value)) from exc


@dataclass(frozen=True)
class CartLine:
    menu_item_id: int
    quantity: int
    # Price the client saw; checked against the catalog when present.
    price: Optional[Decimal] = None


@dataclass(frozen=True)
class FeeInputs:
    delivery_fee: Decimal = ZERO
    tax: Decimal = ZERO
    discount: Decimal = ZERO


@dataclass
class LineItemDraft:
    menu_item_id: int
    name: str
    quantity: int
    price_at_time: Decimal

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price_at_time * self.quantity)


@dataclass
class OrderTotals:
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal


@dataclass
class OrderAggregate:
    user_id: int
    restaurant_id: int
    address_id: int
    totals: OrderTotals
    lines: List[LineItemDraft] = field(default_factory=list)
    special_instructions: Optional[str] = None
    estimated_delivery_time: Optional[datetime] = None


def compute_totals(lines: Sequence[LineItemDraft], fees: FeeInputs) -> OrderTotals:
    """grand total = Σ(price × qty) + delivery fee + tax − discount, never negative."""
    delivery_fee = to_money(fees.delivery_fee)
    tax = to_money(fees.tax)
    discount = to_money(fees.discount)
    for name, value in (("delivery_fee", delivery_fee), ("tax", tax), ("discount", discount)):
        if value < ZERO:
            raise ValidationError(f"{name} cannot be negative", field=name, value=str(value))
        if value > MAX_FEE:
            raise ValidationError(f"{name} exceeds {MAX_FEE}", field=name, value=str(value))

    subtotal = sum((line.line_total for line in lines), ZERO)
    gross = subtotal + delivery_fee + tax
    if discount > gross:
        raise ValidationError(
            "Discount cannot exceed the order subtotal plus fees",
            discount=str(discount),
            maximum=str(gross),
        )
    return OrderTotals(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        tax=tax,
        discount=discount,
        total_amount=gross - discount,
    )


class OrderAggregateBuilder:

    def __init__(self, delivery_eta_minutes: int = DELIVERY_ETA_MINUTES):
        self.delivery_eta_minutes = delivery_eta_minutes

    async def build(
        self,
        user_id: int,
        restaurant_id: int,
        address_id: int,
        lines: Sequence[CartLine],
        fees: FeeInputs = FeeInputs(),
        special_instructions: Optional[str] = None,
        conn: Any = None,
    ) -> OrderAggregate:
        if not lines:
            raise ValidationError("Order must contain at least one item")
        self._check_lines(lines)

        user = await User.filter(id=user_id).using_db(conn).first()
        if user is None:
            raise ReferenceNotFoundError("user", user_id)

        restaurant = await Restaurant.filter(id=restaurant_id).using_db(conn).first()
        if restaurant is None:
            raise ReferenceNotFoundError("restaurant", restaurant_id)
        if not restaurant.is_active:
            raise ValidationError(f"Restaurant {restaurant_id} is not accepting orders", restaurant_id=restaurant_id)

        address = await Address.filter(id=address_id).using_db(conn).first()
        if address is None:
            raise ReferenceNotFoundError("address", address_id)
        if address.user_id != user.id:
            raise ValidationError(
                f"Address {address_id} does not belong to user {user_id}",
                address_id=address_id,
                user_id=user_id,
            )

        ids = [line.menu_item_id for line in lines]
        menu_items = await MenuItem.filter(id__in=ids).using_db(conn)
        menu_map = {m.id: m for m in menu_items}

        drafts = []
        for line in lines:
            menu = menu_map.get(line.menu_item_id)
            if menu is None:
                raise ReferenceNotFoundError("menu item", line.menu_item_id)
            if menu.restaurant_id != restaurant.id:
                raise ValidationError(
                    f"Menu item {menu.id} is not served by restaurant {restaurant.id}",
                    menu_item_id=menu.id,
                    restaurant_id=restaurant.id,
                )
            if not menu.is_available:
                raise ValidationError(f"Menu item {menu.name} is not available", menu_item_id=menu.id)

            catalog_price = to_money(menu.price)
            if line.price is not None and to_money(line.price) != catalog_price:
                raise ValidationError(
                    f"Price for {menu.name} has changed",
                    menu_item_id=menu.id,
                    submitted_price=str(to_money(line.price)),
                    current_price=str(catalog_price),
                )
            drafts.append(LineItemDraft(menu.id, menu.name, line.quantity, catalog_price))

        slowest = max(menu_map[i].preparation_time for i in ids)
        return OrderAggregate(
            user_id=user.id,
            restaurant_id=restaurant.id,
            address_id=address.id,
            totals=compute_totals(drafts, fees),
            lines=drafts,
            special_instructions=special_instructions,
            estimated_delivery_time=timezone.now() + timedelta(minutes=slowest + self.delivery_eta_minutes),
        )

    @staticmethod
    def _check_lines(lines: Sequence[CartLine]) -> None:
        seen = set()
        for line in lines:
            if line.quantity <= 0:
                raise ValidationError("Quantity must be at least 1", menu_item_id=line.menu_item_id)
            if line.menu_item_id in seen:
                raise ValidationError(
                    f"Menu item {line.menu_item_id} appears more than once in the order",
                    menu_item_id=line.menu_item_id,
                )
            seen.add(line.menu_item_id)

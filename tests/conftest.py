from dataclasses import dataclass
from decimal import Decimal

import pytest
import pytest_asyncio

from app.core.container import build_container
from app.core.db import close_db, init_db
from app.models.customer import Address, DeliveryPerson, User
from app.models.order import MenuItem, Order, OrderItem, Restaurant
from app.models.outbox import OutboxEvent
from app.models.payment import Payment, PaymentMethod
from app.models.tracking import OrderTracking
from app.services.order_builder import CartLine, FeeInputs
from app.services.order_processor import CreateOrderCommand

BURGER_ID = 7
FRIES_ID = 8


@dataclass
class Catalog:
    user: User
    address: Address
    restaurant: Restaurant
    courier: DeliveryPerson
    burger: MenuItem
    fries: MenuItem


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test."""
    await init_db(db_url="sqlite://:memory:")
    yield
    await close_db()


@pytest_asyncio.fixture
async def catalog(db):
    user = await User.create(name="Asha Rao", email="asha@example.com")
    address = await Address.create(
        user=user, address_line1="12 Elm Street", city="Springfield", state="IL", zip_code="62701"
    )
    restaurant = await Restaurant.create(name="Burger Barn", city="Springfield")
    courier = await DeliveryPerson.create(name="Ravi", phone_number="+15550001111", vehicle_type="bike")
    # Thresholds at 0 keep low stock alerts out of tests that count outbox rows
    burger = await MenuItem.create(
        id=BURGER_ID, restaurant=restaurant, name="Classic Burger", price=Decimal("12.99"),
        stock=3, low_stock_threshold=0, preparation_time=12,
    )
    fries = await MenuItem.create(
        id=FRIES_ID, restaurant=restaurant, name="Fries", price=Decimal("3.49"),
        stock=10, low_stock_threshold=0, preparation_time=5,
    )
    return Catalog(user, address, restaurant, courier, burger, fries)


@pytest.fixture
def services(db):
    return build_container()


@pytest.fixture
def make_command(catalog):
    def _make(items=((BURGER_ID, 2),), fees=None, payment_method=PaymentMethod.CREDIT_CARD, **overrides):
        fields = dict(
            user_id=catalog.user.id,
            restaurant_id=catalog.restaurant.id,
            address_id=catalog.address.id,
            items=[CartLine(*item) for item in items],
            payment_method=payment_method,
            fees=fees or FeeInputs(),
        )
        fields.update(overrides)
        return CreateOrderCommand(**fields)
    return _make


@pytest.fixture
def snapshot(db):
    """Counts of every table order creation writes to, plus all stock levels."""
    async def _snapshot():
        return {
            "orders": await Order.all().count(),
            "order_items": await OrderItem.all().count(),
            "payments": await Payment.all().count(),
            "tracking": await OrderTracking.all().count(),
            "outbox": await OutboxEvent.all().count(),
            "stock": dict(await MenuItem.all().order_by("id").values_list("id", "stock")),
        }
    return _snapshot

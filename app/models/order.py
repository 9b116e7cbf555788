from enum import Enum
from tortoise import fields, models

from app.core.config import LOW_STOCK_THRESHOLD


class OrderStatus(str, Enum):
    PENDING = "PENDING"  # Header written, stock not yet settled
    CONFIRMED = "CONFIRMED"  # Stock reserved and payment recorded
    PREPARING = "PREPARING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class Restaurant(models.Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)
    city = fields.CharField(max_length=100, null=True)
    is_active = fields.BooleanField(default=True)

    class Meta:
        table = "restaurants"
        indexes = [
            ("is_active",),  # For filtering active restaurants
        ]


class MenuItem(models.Model):
    id = fields.IntField(primary_key=True)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="menu_items")
    name = fields.CharField(max_length=255)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    category = fields.CharField(max_length=100, default="main")
    is_available = fields.BooleanField(default=True)
    preparation_time = fields.IntField(default=15)  # minutes
    # Only ever changed through conditional F() updates (see InventoryLedger)
    stock = fields.IntField(default=100)
    low_stock_threshold = fields.IntField(default=LOW_STOCK_THRESHOLD)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "menu_items"
        indexes = [
            ("restaurant_id",),  # Fast restaurant menu queries
            ("is_available",),      # Filter available items
            ("name",),
            ("restaurant_id", "is_available"),  # Composite: restaurant's available items
        ]


class Order(models.Model):
    id = fields.IntField(primary_key=True)
    order_number = fields.CharField(max_length=32, unique=True)
    user = fields.ForeignKeyField("models.User", related_name="orders")
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="orders")
    address = fields.ForeignKeyField("models.Address", related_name="orders")
    delivery_person = fields.ForeignKeyField(
        "models.DeliveryPerson", related_name="orders", null=True, on_delete=fields.SET_NULL
    )
    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PENDING)
    subtotal = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    delivery_fee = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    tax = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    discount = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_amount = fields.DecimalField(max_digits=14, decimal_places=2)
    special_instructions = fields.TextField(null=True)
    estimated_delivery_time = fields.DatetimeField(null=True)
    actual_delivery_time = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        indexes = [
            ("restaurant_id",),          # Restaurant order queries
            ("status",),                 # Status-based filtering
            ("user_id", "created_at"),   # User order timeline
            ("created_at",),             # Time-based queries
        ]


class OrderItem(models.Model):
    id = fields.IntField(primary_key=True)
    order = fields.ForeignKeyField("models.Order", related_name="items")
    menu_item = fields.ForeignKeyField("models.MenuItem", related_name="order_items")
    quantity = fields.IntField()
    price_at_time = fields.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        table = "order_items"
        unique_together = (("order", "menu_item"),)
        indexes = [
            ("order_id",),              # Order line items
            ("menu_item_id",),          # Menu item popularity
        ]

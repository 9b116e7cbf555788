from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from app.models.order import Order, OrderItem, OrderStatus
from app.models.payment import Payment
from app.models.tracking import OrderTracking
from app.services.tracking_log import StatusTrackingLog


@dataclass
class OrderDetail:
    order: Order
    items: List[OrderItem]
    payment: Optional[Payment] = None
    tracking: List[OrderTracking] = field(default_factory=list)


async def get_order_items(order_id: int) -> List[OrderItem]:
    # Pre-fetch menu items so names come back without N+1 queries
    return await OrderItem.filter(order_id=order_id).prefetch_related("menu_item").order_by("id")


async def get_order_by_id(order_id: int, tracking: Optional[StatusTrackingLog] = None) -> Optional[OrderDetail]:
    """Fetches an order with its line items, payment and tracking history."""
    order = await Order.get_or_none(id=order_id)
    if order is None:
        return None

    return OrderDetail(
        order=order,
        items=await get_order_items(order_id),
        payment=await Payment.get_or_none(order_id=order_id),
        tracking=await (tracking or StatusTrackingLog()).history(order_id),
    )


async def list_orders(
    page: int = 1,
    limit: int = 10,
    user_id: Optional[int] = None,
    restaurant_id: Optional[int] = None,
    status: Optional[OrderStatus] = None,
) -> Tuple[List[Order], int]:
    """Newest-first page of orders plus the total matching count."""
    filters = {}
    if user_id is not None:
        filters["user_id"] = user_id
    if restaurant_id is not None:
        filters["restaurant_id"] = restaurant_id
    if status is not None:
        filters["status"] = status

    query = Order.filter(**filters)
    total = await query.count()
    orders = await query.order_by("-created_at", "-id").offset((page - 1) * limit).limit(limit)
    return orders, total

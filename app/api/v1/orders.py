import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_order_processor, get_status_updater, get_tracking_log
from app.core import config
from app.models.order import Order, OrderStatus
from app.schemas.order import (
    CreateOrderRequest,
    OrderConfirmationResponse,
    OrderResponse,
    OrderUpdateRequest,
    Pagination,
    PaymentResponse,
    TrackingEventResponse,
)
from app.schemas.response import SuccessResponse
from app.services.faults import ForcedFailure
from app.services.order_processor import OrderProcessor
from app.services.order_service import get_order_by_id, get_order_items, list_orders
from app.services.order_status import OrderStatusUpdater
from app.services.tracking_log import StatusTrackingLog

router = APIRouter()
log = logging.getLogger(__name__)


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_order_endpoint(
    request_data: CreateOrderRequest,
    processor: OrderProcessor = Depends(get_order_processor),
):
    """
    Places an order: reserves stock, records payment and confirms it in one
    transaction. Any failure leaves stock, orders and payments untouched.
    """
    faults = None
    if request_data.simulate_failure:
        if not config.ENABLE_FAULT_INJECTION:
            raise HTTPException(status_code=400, detail="Fault injection is disabled on this server.")
        faults = ForcedFailure()

    confirmation = await processor.create_order(request_data.to_command(), faults=faults)
    log.info("Order %s placed for user %s.", confirmation.order.order_number, request_data.user_id)

    data = OrderConfirmationResponse(
        order=OrderResponse.from_model(confirmation.order, items=confirmation.items),
        payment=PaymentResponse.from_model(confirmation.payment),
    ).model_dump(mode="json")
    return SuccessResponse(message="Order created successfully", data=data)


@router.get("/", response_model=SuccessResponse)
async def list_orders_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: Optional[int] = None,
    restaurant_id: Optional[int] = None,
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
):
    """Paginated order listing, newest first."""
    orders, total = await list_orders(
        page, limit, user_id=user_id, restaurant_id=restaurant_id, status=order_status
    )
    return SuccessResponse(
        data=[OrderResponse.from_model(o).model_dump(mode="json") for o in orders],
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)).model_dump(),
    )


@router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_endpoint(order_id: int, tracking: StatusTrackingLog = Depends(get_tracking_log)):
    """Fetches an order with items, payment and tracking history."""
    detail = await get_order_by_id(order_id, tracking=tracking)
    if not detail:
        raise HTTPException(status_code=404, detail="Order not found")

    data = OrderResponse.from_model(
        detail.order, items=detail.items, payment=detail.payment, tracking=detail.tracking
    ).model_dump(mode="json")
    return SuccessResponse(data=data)


@router.get("/{order_id}/tracking", response_model=SuccessResponse)
async def get_order_tracking_endpoint(order_id: int, tracking: StatusTrackingLog = Depends(get_tracking_log)):
    """Status history of an order, oldest first."""
    if not await Order.filter(id=order_id).exists():
        raise HTTPException(status_code=404, detail="Order not found")
    events = await tracking.history(order_id)
    return SuccessResponse(data=[TrackingEventResponse.from_model(t).model_dump(mode="json") for t in events])


@router.patch("/{order_id}", response_model=SuccessResponse)
async def update_order_endpoint(
    order_id: int,
    payload: OrderUpdateRequest,
    updater: OrderStatusUpdater = Depends(get_status_updater),
):
    """
    Updates status (e.g. 'PREPARING', 'OUT_FOR_DELIVERY', 'DELIVERED'),
    special instructions or the assigned delivery person.
    """
    # Only forward what the client actually sent; explicit nulls clear a field
    changes = payload.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)
    order = await updater.update_status(order_id, new_status, **changes)

    data = OrderResponse.from_model(order, items=await get_order_items(order.id)).model_dump(mode="json")
    return SuccessResponse(message="Order updated successfully", data=data)


@router.delete("/{order_id}", response_model=SuccessResponse)
async def cancel_order_endpoint(
    order_id: int,
    updater: OrderStatusUpdater = Depends(get_status_updater),
):
    """Cancels the order. Delivered or already cancelled orders are rejected."""
    order = await updater.cancel(order_id)
    return SuccessResponse(message="Order cancelled successfully", data=OrderResponse.from_model(order).model_dump(mode="json"))

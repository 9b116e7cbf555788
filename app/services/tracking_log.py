from typing import Any, List, Optional

from app.models.order import OrderStatus
from app.models.tracking import OrderTracking


class StatusTrackingLog:
    """Append-only history of the statuses an order has been in."""

    async def append(
        self,
        order_id: int,
        status: OrderStatus,
        *,
        notes: Optional[str] = None,
        location: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        conn: Any = None,
    ) -> OrderTracking:
        return await OrderTracking.create(
            order_id=order_id,
            status=status,
            notes=notes,
            location=location,
            latitude=latitude,
            longitude=longitude,
            using_db=conn,
        )

    async def history(self, order_id: int, conn: Any = None) -> List[OrderTracking]:
        # id breaks ties between events written in the same transaction
        return await OrderTracking.filter(order_id=order_id).using_db(conn).order_by("timestamp", "id")

import logging
from typing import Any, Dict

log = logging.getLogger("notifications")


class NotificationDispatcher:
    """
    Boundary to the customer/ops notification service.

    This implementation only logs; swap in an email or push client by
    subclassing and overriding the ``notify_*`` coroutines.
    """

    async def notify_order_confirmed(self, payload: Dict[str, Any]) -> None:
        log.info(
            "NOTIFY user %s: order %s confirmed, total %s",
            payload.get("user_id"), payload.get("order_number"), payload.get("total_amount"),
        )

    async def notify_status_changed(self, payload: Dict[str, Any]) -> None:
        log.info(
            "NOTIFY user %s: order %s is now %s",
            payload.get("user_id"), payload.get("order_number"), payload.get("new_status"),
        )

    async def notify_order_cancelled(self, payload: Dict[str, Any]) -> None:
        log.info(
            "NOTIFY user %s: order %s cancelled (%s)",
            payload.get("user_id"), payload.get("order_number"), payload.get("notes"),
        )

    async def notify_low_stock(self, payload: Dict[str, Any]) -> None:
        log.warning(
            "ALERT ops: item %s (%s) has low stock (%s remaining)",
            payload.get("menu_item_id"), payload.get("name"), payload.get("available_qty"),
        )

import logging
from typing import Any, Optional

from tortoise.expressions import F
from tortoise.queryset import UpdateQuery

from app.core.errors import InsufficientStockError, ItemNotFoundError, ValidationError
from app.events.outbox_utility import create_outbox_event
from app.models.order import MenuItem

log = logging.getLogger(__name__)


class InventoryLedger:
    """
    Per-item stock counter on ``menu_items.stock``.

    Stock is never read, modified and written back by the application. Every
    change is one UPDATE with an F() expression so that concurrent orders
    against the same item are serialised by the database row lock.
    """

    async def try_reserve(self, menu_item_id: int, quantity: int, conn: Any) -> None:
        """
        Decrements stock by ``quantity`` inside the caller's transaction.

        Runs ``UPDATE ... SET stock = stock - q WHERE id = ? AND stock >= q``;
        zero affected rows means the item is missing or short on stock.
        """
        if quantity <= 0:
            raise ValidationError("Quantity must be at least 1", menu_item_id=menu_item_id, quantity=quantity)

        updated = await self.reservation_query(menu_item_id, quantity, conn)
        if not updated:
            # Read only to explain the failure; nothing is written from it.
            item = await MenuItem.filter(id=menu_item_id).using_db(conn).first()
            if item is None:
                raise ItemNotFoundError(menu_item_id)
            log.info(
                "Reservation refused for item %s: requested %s, available %s",
                menu_item_id, quantity, item.stock,
            )
            raise InsufficientStockError(menu_item_id, item.name, requested=quantity, available=item.stock)

        await self._check_for_low_stock(menu_item_id, conn)

    def reservation_query(self, menu_item_id: int, quantity: int, conn: Any = None) -> UpdateQuery:
        return (
            MenuItem.filter(id=menu_item_id, stock__gte=quantity)
            .using_db(conn)
            .update(stock=F("stock") - quantity)
        )

    async def restock(self, menu_item_id: int, quantity: int, conn: Any = None) -> int:
        """Atomically adds ``quantity`` units and returns the new stock level."""
        if quantity <= 0:
            raise ValidationError("Restock quantity must be at least 1", menu_item_id=menu_item_id, quantity=quantity)

        updated = await MenuItem.filter(id=menu_item_id).using_db(conn).update(stock=F("stock") + quantity)
        if not updated:
            raise ItemNotFoundError(menu_item_id)
        return await self.stock_level(menu_item_id, conn)

    async def stock_level(self, menu_item_id: int, conn: Any = None) -> int:
        item = await self._get(menu_item_id, conn)
        if item is None:
            raise ItemNotFoundError(menu_item_id)
        return item.stock

    async def _get(self, menu_item_id: int, conn: Any) -> Optional[MenuItem]:
        return await MenuItem.filter(id=menu_item_id).using_db(conn).first()

    async def _check_for_low_stock(self, menu_item_id: int, conn: Any) -> None:
        """Emits a low stock alert in the same transaction when stock hits the threshold."""
        item = await self._get(menu_item_id, conn)
        if item is None or item.stock > item.low_stock_threshold:
            return

        log.warning("Low stock detected for item %s (%s): %s left", item.id, item.name, item.stock)
        await create_outbox_event(
            aggregate_type="menu_item",
            aggregate_id=item.id,
            event_type="inventory.low_stock_alert.v1",
            payload={
                "menu_item_id": item.id,
                "name": item.name,
                "available_qty": item.stock,
                "threshold": item.low_stock_threshold,
            },
            conn=conn,
        )

from unittest.mock import AsyncMock

import pytest

from app.consumers.outbox_poller import dispatch_event, poll_outbox_for_new_events
from app.core.config import MAX_ATTEMPTS
from app.core.errors import InsufficientStockError
from app.events.outbox_utility import create_outbox_event
from app.models.order import OrderStatus
from app.models.outbox import OutboxEvent
from app.models.processed_event import ProcessedEvent
from app.services.notifications import NotificationDispatcher


@pytest.fixture
def dispatcher():
    return AsyncMock(spec=NotificationDispatcher)


class TestOutboxPoller:

    @pytest.mark.asyncio
    async def test_order_events_reach_the_notifier(self, services, make_command, dispatcher):
        confirmation = await services.processor.create_order(make_command())
        await services.status_updater.update_status(confirmation.order.id, OrderStatus.PREPARING)
        await services.status_updater.cancel(confirmation.order.id)

        assert await poll_outbox_for_new_events(dispatcher) == 3

        dispatcher.notify_order_confirmed.assert_awaited_once()
        assert dispatcher.notify_order_confirmed.await_args.args[0]["order_number"] == confirmation.order.order_number
        dispatcher.notify_status_changed.assert_awaited_once()
        dispatcher.notify_order_cancelled.assert_awaited_once()
        assert await OutboxEvent.filter(published=False).count() == 0
        assert await OutboxEvent.filter(published_at__isnull=True).count() == 0

    @pytest.mark.asyncio
    async def test_rolled_back_order_sends_nothing(self, services, make_command, dispatcher):
        with pytest.raises(InsufficientStockError):
            await services.processor.create_order(make_command(items=((7, 50),)))

        assert await poll_outbox_for_new_events(dispatcher) == 0
        dispatcher.notify_order_confirmed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_dispatch_is_retried_later(self, db, dispatcher):
        await create_outbox_event("menu_item", 7, "inventory.low_stock_alert.v1", {"menu_item_id": 7})
        dispatcher.notify_low_stock.side_effect = RuntimeError("smtp down")

        assert await poll_outbox_for_new_events(dispatcher) == 0

        event = await OutboxEvent.get(event_type="inventory.low_stock_alert.v1")
        assert event.published is False
        assert event.attempts == 1
        assert event.last_error == "smtp down"

    @pytest.mark.asyncio
    async def test_exhausted_events_are_skipped(self, db, dispatcher):
        event = await create_outbox_event("order", 1, "order.confirmed.v1", {"order_id": 1})
        event.attempts = MAX_ATTEMPTS
        await event.save()

        assert await poll_outbox_for_new_events(dispatcher) == 0
        dispatcher.notify_order_confirmed.assert_not_awaited()


class TestDispatchIdempotency:

    @pytest.mark.asyncio
    async def test_event_dispatched_once(self, db, dispatcher):
        event = await create_outbox_event("order", 1, "order.cancelled.v1", {"order_id": 1})

        assert await dispatch_event(event, dispatcher) is True
        assert await dispatch_event(event, dispatcher) is False

        dispatcher.notify_order_cancelled.assert_awaited_once_with({"order_id": 1})
        assert await ProcessedEvent.filter(event_id=event.id).count() == 1

    @pytest.mark.asyncio
    async def test_unknown_event_type_is_marked_processed(self, db, dispatcher):
        event = await create_outbox_event("order", 1, "order.refunded.v1", {"order_id": 1})

        assert await dispatch_event(event, dispatcher) is True
        assert await ProcessedEvent.filter(event_id=event.id).exists()

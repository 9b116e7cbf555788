import asyncio
import logging
from typing import Optional

from tortoise import timezone
from tortoise.exceptions import BaseORMException

from app.core.config import BATCH_SIZE, LOG_LEVEL, MAX_ATTEMPTS, POLLING_INTERVAL
from app.core.db import close_db, init_db
from app.models.outbox import OutboxEvent
from app.models.processed_event import ProcessedEvent
from app.services.notifications import NotificationDispatcher

log = logging.getLogger("outbox_poller")

# event_type -> NotificationDispatcher coroutine name
HANDLERS = {
    "order.confirmed.v1": "notify_order_confirmed",
    "order.status_changed.v1": "notify_status_changed",
    "order.cancelled.v1": "notify_order_cancelled",
    "inventory.low_stock_alert.v1": "notify_low_stock",
}


async def dispatch_event(event: OutboxEvent, dispatcher: NotificationDispatcher) -> bool:
    """
    Hands one outbox event to its notification handler.
    Returns False when the event had already been delivered.
    """
    if await ProcessedEvent.filter(event_id=event.id).exists():
        log.info("Event %s already delivered, skipping.", event.id)
        return False

    handler_name = HANDLERS.get(event.event_type)
    if handler_name is None:
        log.warning("No handler for event type %s; marking %s as processed.", event.event_type, event.id)
    else:
        log.info("Dispatching %s (%s)", event.event_type, event.id.hex[:8])
        await getattr(dispatcher, handler_name)(event.payload)

    await ProcessedEvent.create(event_id=event.id, event_type=event.event_type)
    return True


async def poll_outbox_for_new_events(dispatcher: NotificationDispatcher, batch_size: int = BATCH_SIZE) -> int:
    """
    Sends one batch of unpublished events, oldest first.
    Returns how many were marked published. A failed event keeps its place
    in the queue until it has used up MAX_ATTEMPTS.
    """
    events = await OutboxEvent.filter(published=False, attempts__lt=MAX_ATTEMPTS).order_by("created_at").limit(batch_size)

    published = 0
    for event in events:
        try:
            await dispatch_event(event, dispatcher)
        except Exception as exc:
            # Any notifier error counts as a failed attempt
            event.attempts += 1
            event.last_error = str(exc)[:500]
            await event.save(update_fields=["attempts", "last_error"])
            log.exception("Dispatch failed for event %s (attempt %s/%s)", event.id, event.attempts, MAX_ATTEMPTS)
            if event.attempts >= MAX_ATTEMPTS:
                log.error("Event %s (%s) gave up after %s attempts", event.id, event.event_type, MAX_ATTEMPTS)
            continue

        event.published = True
        event.published_at = timezone.now()
        await event.save(update_fields=["published", "published_at"])
        published += 1
    return published


async def start_outbox_poller(dispatcher: Optional[NotificationDispatcher] = None):
    """Main loop for the notification worker."""
    dispatcher = dispatcher or NotificationDispatcher()
    await init_db(generate_schemas=False)
    log.info("--- Outbox Poller Service Started ---")

    try:
        while True:
            try:
                sent = await poll_outbox_for_new_events(dispatcher)
                if sent:
                    log.info("Published %s event(s).", sent)
            except BaseORMException as e:
                log.error("Poller encountered a database error: %s.", e)

            await asyncio.sleep(POLLING_INTERVAL)
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    try:
        asyncio.run(start_outbox_poller())
    except KeyboardInterrupt:
        log.info("Poller service stopped.")

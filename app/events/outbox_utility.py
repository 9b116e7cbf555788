from typing import Any, Dict, Optional

from app.models.outbox import OutboxEvent


async def create_outbox_event(
    aggregate_type: str,
    aggregate_id: Optional[int],
    event_type: str,
    payload: Dict[str, Any],
    conn: Any = None,
) -> OutboxEvent:
    """
    Queues a notification for the outbox poller.

    Pass the caller's transaction as ``conn``: the row must commit or roll
    back together with the change it describes.
    """
    return await OutboxEvent.create(
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        event_type=event_type,
        payload=payload,
        using_db=conn,
    )

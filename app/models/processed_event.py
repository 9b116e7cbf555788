from tortoise import fields, models


class ProcessedEvent(models.Model):
    """Dedup ledger for the notification poller: one row per delivered outbox event."""
    event_id = fields.UUIDField(primary_key=True)
    event_type = fields.CharField(max_length=128)
    processed_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "processed_events"

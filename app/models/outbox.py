import uuid

from tortoise import fields, models


class OutboxEvent(models.Model):
    """
    Notification waiting to be sent. Rows are written in the same transaction
    as the business change, so a rolled back order never notifies anyone.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    aggregate_type = fields.CharField(max_length=64)  # 'order' or 'menu_item'
    aggregate_id = fields.IntField(null=True)
    event_type = fields.CharField(max_length=128)  # e.g. 'order.confirmed.v1'
    payload = fields.JSONField()
    published = fields.BooleanField(default=False)
    published_at = fields.DatetimeField(null=True)
    attempts = fields.IntField(default=0)
    last_error = fields.CharField(max_length=500, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "outbox_events"
        indexes = [
            ("published", "created_at"),
        ]

    def __str__(self):
        return f"{self.event_type}:{self.aggregate_type}/{self.aggregate_id}"

from tortoise import fields, models

from app.models.order import OrderStatus


class OrderTracking(models.Model):
    """
    One row per status an order has been in. Rows are append-only: once an
    event is stored it can be neither saved again nor deleted through the model.
    """
    id = fields.IntField(primary_key=True)
    order = fields.ForeignKeyField("models.Order", related_name="tracking")
    status = fields.CharEnumField(OrderStatus)
    location = fields.CharField(max_length=200, null=True)
    latitude = fields.FloatField(null=True)
    longitude = fields.FloatField(null=True)
    notes = fields.CharField(max_length=500, null=True)
    timestamp = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "order_tracking"
        indexes = [
            ("order_id", "timestamp"),
        ]

    async def save(self, *args, **kwargs):
        if self._saved_in_db:
            raise TypeError("Tracking events are append-only and cannot be updated.")
        await super().save(*args, **kwargs)

    async def delete(self, *args, **kwargs):
        raise TypeError("Tracking events are append-only and cannot be deleted.")

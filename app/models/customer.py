from tortoise import fields, models


class User(models.Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)
    email = fields.CharField(max_length=255, unique=True)
    phone_number = fields.CharField(max_length=32, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"


class Address(models.Model):
    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="addresses")
    address_line1 = fields.CharField(max_length=255)
    address_line2 = fields.CharField(max_length=255, null=True)
    city = fields.CharField(max_length=100)
    state = fields.CharField(max_length=100)
    zip_code = fields.CharField(max_length=20)
    country = fields.CharField(max_length=100, default="USA")
    is_default = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "addresses"
        indexes = [
            ("user_id",),
            ("zip_code",),
        ]


class DeliveryPerson(models.Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)
    phone_number = fields.CharField(max_length=32, unique=True)
    vehicle_type = fields.CharField(max_length=50)
    is_available = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "delivery_persons"
        indexes = [
            ("is_available",),
        ]

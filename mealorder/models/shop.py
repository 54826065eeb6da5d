from enum import Enum
from tortoise import fields, models
import uuid


class SpiceLevel(str, Enum):
    MILD = "mild"
    MEDIUM = "medium"
    HOT = "hot"
    EXTRA_HOT = "extra-hot"


class CustomizationType(str, Enum):
    PROTEIN = "protein"
    CURRY = "curry"
    EXTRA = "extra"


class Shop(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    # A merchant owns exactly one shop
    merchant_id = fields.CharField(max_length=64, unique=True)
    name = fields.CharField(max_length=255)
    location = fields.CharField(max_length=255, default="")
    phone = fields.CharField(max_length=32, default="")
    description = fields.TextField(null=True)

    # Operational settings
    is_open = fields.BooleanField(default=False)
    accepting_orders = fields.BooleanField(default=True)
    closing_time = fields.CharField(max_length=16, null=True)
    order_limit = fields.IntField(null=True) # null or 0 means unlimited
    orders_received = fields.IntField(default=0) # Reset daily

    # Statistics
    total_orders = fields.IntField(default=0)
    total_revenue = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    rating = fields.FloatField(default=0)
    review_count = fields.IntField(default=0)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "shops"
        indexes = [
            ("is_open", "accepting_orders"),
        ]


class MealType(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    shop = fields.ForeignKeyField("models.Shop", related_name="meal_types")
    name = fields.CharField(max_length=255)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    description = fields.TextField(null=True)
    available = fields.BooleanField(default=True)
    position = fields.IntField(default=0)

    class Meta:
        table = "meal_types"
        ordering = ["position"]


class Curry(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    shop = fields.ForeignKeyField("models.Shop", related_name="curries")
    name = fields.CharField(max_length=255)
    available = fields.BooleanField(default=True)
    spice_level = fields.CharEnumField(SpiceLevel, default=SpiceLevel.MEDIUM)
    position = fields.IntField(default=0)

    class Meta:
        table = "curries"
        ordering = ["position"]


class Customization(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    shop = fields.ForeignKeyField("models.Shop", related_name="customizations")
    name = fields.CharField(max_length=255)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    type = fields.CharEnumField(CustomizationType)
    available = fields.BooleanField(default=True)
    position = fields.IntField(default=0)

    class Meta:
        table = "customizations"
        ordering = ["position"]

from enum import Enum
from tortoise import fields, models
import uuid

from mealorder.models.shop import CustomizationType


class OrderStatus(str, Enum):
    PENDING = "pending"  # Initial state, set at creation
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"  # Terminal
    CANCELLED = "cancelled"  # Terminal


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    ONLINE = "online"


class Order(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order_number = fields.CharField(max_length=32, unique=True)

    customer_id = fields.CharField(max_length=64)
    merchant_id = fields.CharField(max_length=64)
    shop = fields.ForeignKeyField("models.Shop", related_name="orders")
    # Snapshots captured at creation, never re-derived
    customer_name = fields.CharField(max_length=255)
    customer_phone = fields.CharField(max_length=32, null=True)
    merchant_name = fields.CharField(max_length=255)

    total = fields.DecimalField(max_digits=14, decimal_places=2)
    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PENDING)
    payment_status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING)
    payment_method = fields.CharEnumField(PaymentMethod, default=PaymentMethod.CASH)
    notes = fields.TextField(null=True)

    # Lifecycle timestamps, each set at most once
    confirmed_at = fields.DatetimeField(null=True)
    preparing_at = fields.DatetimeField(null=True)
    ready_at = fields.DatetimeField(null=True)
    completed_at = fields.DatetimeField(null=True)
    cancelled_at = fields.DatetimeField(null=True)

    estimated_pickup_time = fields.DatetimeField(null=True)
    cancellation_reason = fields.TextField(null=True)

    # Rating and review (after completion)
    rating = fields.SmallIntField(null=True)
    review = fields.TextField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        indexes = [
            ("customer_id", "created_at"),   # Customer order history
            ("merchant_id", "status"),       # Merchant dashboard filters
            ("merchant_id", "created_at"),
        ]


class OrderItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="items")
    position = fields.IntField()
    # Meal type snapshot
    meal_type_id = fields.UUIDField()
    meal_type_name = fields.CharField(max_length=255)
    meal_type_price = fields.DecimalField(max_digits=12, decimal_places=2)
    subtotal = fields.DecimalField(max_digits=14, decimal_places=2)
    special_instructions = fields.TextField(null=True)

    class Meta:
        table = "order_items"
        ordering = ["position"]


class OrderItemCurry(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order_item = fields.ForeignKeyField("models.OrderItem", related_name="curries")
    curry_id = fields.UUIDField()
    curry_name = fields.CharField(max_length=255)

    class Meta:
        table = "order_item_curries"


class OrderItemCustomization(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order_item = fields.ForeignKeyField("models.OrderItem", related_name="customizations")
    customization_id = fields.UUIDField()
    name = fields.CharField(max_length=255)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    type = fields.CharEnumField(CustomizationType)
    quantity = fields.IntField(default=1)

    class Meta:
        table = "order_item_customizations"

# mealorder/models/__init__.py
from .shop import Shop, MealType, Curry, Customization, CustomizationType, SpiceLevel
from .order import (
    Order,
    OrderItem,
    OrderItemCurry,
    OrderItemCustomization,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)

# Export all models
__all__ = [
    "Shop",
    "MealType",
    "Curry",
    "Customization",
    "CustomizationType",
    "SpiceLevel",
    "Order",
    "OrderItem",
    "OrderItemCurry",
    "OrderItemCustomization",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
]

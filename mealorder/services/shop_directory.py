import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from tortoise.expressions import F
from tortoise.transactions import in_transaction

from mealorder.core.config import DEFAULT_ORDER_LIMIT
from mealorder.core.errors import ConflictError, InvalidInputError, ShopNotFound
from mealorder.models.shop import Curry, Customization, CustomizationType, MealType, Shop
from mealorder.services.admission import limit_reached

log = logging.getLogger("mealorder.shop_directory")

# Catalog every newly approved merchant starts with
DEFAULT_MEAL_TYPES = [
    ("Vegetarian Rice", Decimal("250")),
    ("Chicken Rice", Decimal("350")),
    ("Fish Rice", Decimal("400")),
    ("Egg Rice", Decimal("300")),
]
DEFAULT_CURRIES = ["Dhal Curry", "Vegetable Curry", "Potato Curry", "Chicken Curry", "Fish Curry"]
DEFAULT_CUSTOMIZATIONS = [
    ("Extra Chicken Piece", Decimal("100"), CustomizationType.PROTEIN),
    ("Extra Fish Piece", Decimal("150"), CustomizationType.PROTEIN),
    ("Extra Curry", Decimal("50"), CustomizationType.CURRY),
    ("Extra Rice", Decimal("30"), CustomizationType.EXTRA),
]

SETTINGS_FIELDS = ("is_open", "accepting_orders", "order_limit", "closing_time")
# Settings that an explicit null clears
NULLABLE_SETTINGS = ("order_limit", "closing_time")

# Bounded compare-and-swap attempts on orders_received
_CAS_ATTEMPTS = 5


async def get_shop(shop_id, conn: Any = None) -> Shop:
    shop = await Shop.get_or_none(id=shop_id).using_db(conn)
    if not shop:
        raise ShopNotFound(shop_id)
    return shop


async def get_shop_by_merchant(merchant_id: str, conn: Any = None) -> Shop:
    shop = await Shop.get_or_none(merchant_id=merchant_id).using_db(conn)
    if not shop:
        raise ShopNotFound()
    return shop


async def get_shop_with_catalog(shop_id) -> Shop:
    """Fetches a shop with its menu catalog prefetched."""
    shop = await Shop.get_or_none(id=shop_id).prefetch_related('meal_types', 'curries', 'customizations')
    if not shop:
        raise ShopNotFound(shop_id)
    return shop


async def list_shops() -> List[Shop]:
    return await Shop.all().order_by('-created_at').prefetch_related('meal_types', 'curries', 'customizations')


async def lock_shop(shop_id, conn: Any) -> Optional[Shop]:
    """Reads the shop row with a row lock held until ``conn`` commits."""
    return await Shop.filter(id=shop_id).select_for_update().using_db(conn).first()


async def create_shop_for_merchant(
    merchant_id: str,
    name: str,
    location: str = "",
    phone: str = "",
    description: Optional[str] = None,
) -> Shop:
    """
    Creates the single shop of a newly approved merchant, seeded with the
    default catalog. Shop and catalog are written in one transaction.
    """
    async with in_transaction() as conn:
        if await Shop.filter(merchant_id=merchant_id).using_db(conn).exists():
            raise ConflictError(f"Merchant {merchant_id} already owns a shop")

        shop = await Shop.create(
            merchant_id=merchant_id,
            name=name,
            location=location,
            phone=phone,
            description=description,
            order_limit=DEFAULT_ORDER_LIMIT,
            using_db=conn,
        )
        for position, (meal_name, price) in enumerate(DEFAULT_MEAL_TYPES):
            await MealType.create(shop=shop, name=meal_name, price=price, position=position, using_db=conn)
        for position, curry_name in enumerate(DEFAULT_CURRIES):
            await Curry.create(shop=shop, name=curry_name, position=position, using_db=conn)
        for position, (custom_name, price, kind) in enumerate(DEFAULT_CUSTOMIZATIONS):
            await Customization.create(
                shop=shop, name=custom_name, price=price, type=kind, position=position, using_db=conn
            )

    log.info(f"Shop {shop.id} created for merchant {merchant_id}.")
    return shop


async def update_settings(shop_id, settings: Dict[str, Any]) -> Shop:
    """
    Applies the provided operational settings; fields absent from ``settings``
    are left untouched.
    """
    updates = {
        k: v for k, v in settings.items()
        if k in SETTINGS_FIELDS and (v is not None or k in NULLABLE_SETTINGS)
    }

    limit = updates.get("order_limit")
    if limit is not None and limit < 0:
        raise InvalidInputError("Order limit must be zero or a positive integer")

    async with in_transaction() as conn:
        shop = await lock_shop(shop_id, conn)
        if not shop:
            raise ShopNotFound(shop_id)
        if updates:
            for field, value in updates.items():
                setattr(shop, field, value)
            await shop.save(update_fields=list(updates) + ['updated_at'], using_db=conn)

    log.info(f"Shop {shop_id} settings updated: {updates}")
    return shop


async def increment_order_counters(shop_id, conn: Any) -> bool:
    """
    Atomically bumps ``orders_received`` and ``total_orders`` by one.

    The increment only happens while the shop is below its order limit. The
    write is a compare-and-swap on ``orders_received``, so a concurrent
    placement that took the slot first makes this one fail instead of
    overshooting the limit. Returns False when nothing was written.
    """
    for _ in range(_CAS_ATTEMPTS):
        shop = await lock_shop(shop_id, conn)
        if not shop:
            raise ShopNotFound(shop_id)
        if limit_reached(shop):
            return False

        observed = shop.orders_received
        updated = await Shop.filter(id=shop_id, orders_received=observed).using_db(conn).update(
            orders_received=observed + 1,
            total_orders=F("total_orders") + 1,
        )
        if updated:
            return True
        log.warning(f"Order counter of shop {shop_id} moved concurrently, retrying.")

    return False


async def accrue_revenue(shop_id, amount: Decimal, conn: Any) -> Shop:
    """Adds ``amount`` to the shop's total revenue under a row lock."""
    amount = Decimal(amount)
    if amount < 0:
        raise InvalidInputError("Revenue amount must not be negative")

    shop = await lock_shop(shop_id, conn)
    if not shop:
        raise ShopNotFound(shop_id)
    shop.total_revenue = Decimal(shop.total_revenue) + amount
    await shop.save(update_fields=['total_revenue', 'updated_at'], using_db=conn)
    return shop


async def reset_daily_counters() -> int:
    """Sets ``orders_received`` to 0 on every shop. Triggered by a scheduler."""
    count = await Shop.all().update(orders_received=0)
    log.info(f"Daily order counters reset for {count} shops.")
    return count

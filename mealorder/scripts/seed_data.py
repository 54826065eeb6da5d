# scripts/seed_data.py
import asyncio
import logging

from mealorder.core.config import LOG_FORMAT
from mealorder.core.db import init_db, close_db
from mealorder.core.errors import ConflictError
from mealorder.services import shop_directory

log = logging.getLogger("mealorder.seed")

DEMO_MERCHANT_ID = "merchant-demo"


async def seed():
    # Create the demo merchant's shop with the default menu
    try:
        shop = await shop_directory.create_shop_for_merchant(
            merchant_id=DEMO_MERCHANT_ID,
            name="Spice Garden Restaurant",
            location="Main Street, Downtown",
            phone="+1 234-567-8900",
            description="Authentic Sri Lankan cuisine with fresh ingredients",
        )
    except ConflictError:
        shop = await shop_directory.get_shop_by_merchant(DEMO_MERCHANT_ID)
        log.info(f"Demo shop already exists: {shop.id}")

    # Open it for business (idempotent)
    await shop_directory.update_settings(shop.id, {
        "is_open": True,
        "accepting_orders": True,
        "order_limit": 25,
        "closing_time": "21:00",
    })

    shop = await shop_directory.get_shop_with_catalog(shop.id)
    log.info(f"Shop: {shop.id}")
    log.info(f"Meal types: {[str(m.id) for m in shop.meal_types]}")
    log.info(f"Curries: {[str(c.id) for c in shop.curries]}")
    log.info(f"Customizations: {[str(c.id) for c in shop.customizations]}")


async def main():
    await init_db()
    await seed()
    await close_db()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    asyncio.run(main())

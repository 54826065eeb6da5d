# scripts/reset_daily_orders.py
# Cron entry point, e.g. "0 0 * * * python -m mealorder.scripts.reset_daily_orders"
import asyncio
import logging

from mealorder.core.config import LOG_FORMAT
from mealorder.core.db import init_db, close_db
from mealorder.services.shop_directory import reset_daily_counters

log = logging.getLogger("mealorder.reset_daily_orders")


async def main():
    await init_db(generate_schemas=False)
    try:
        count = await reset_daily_counters()
        log.info(f"Reset daily order counters of {count} shops.")
    finally:
        await close_db()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    asyncio.run(main())

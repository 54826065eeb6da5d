import logging
from logging import INFO

from tortoise import Tortoise

from mealorder.core.config import DB_URL

log = logging.getLogger("mealorder.db")

# Set logging level for Tortoise ORM
logging.getLogger('tortoise').setLevel(INFO)

# Define all models modules for the ORM
MODELS_MODULES = [
    "mealorder.models.shop",
    "mealorder.models.order",
]


async def init_db(db_url: str = DB_URL, generate_schemas: bool = True):
    """Initializes the Tortoise ORM connection and (optionally) generates schemas."""
    try:
        await Tortoise.init(
            db_url=db_url,
            modules={"models": MODELS_MODULES},
        )
        if generate_schemas:
            # Create tables that do not exist yet
            await Tortoise.generate_schemas(safe=True)
        log.info("Database connection established.")
    except Exception as e:
        log.critical(f"Could not connect to database. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise


async def close_db():
    """Closes all database connections."""
    await Tortoise.close_connections()
    log.info("Database connections closed.")

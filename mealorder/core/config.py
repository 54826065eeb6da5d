import os
from decimal import Decimal

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/mealorder_db")

# Application Metadata
PROJECT_NAME = "Meal Pre-Order Platform"
VERSION = "1.0.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Shop defaults (applied when a shop is created for an approved merchant)
DEFAULT_ORDER_LIMIT = int(os.getenv("DEFAULT_ORDER_LIMIT", 50))

# Smallest currency unit; order amounts are stored with two decimal places
MONEY_QUANTUM = Decimal("0.01")

# Order rules
MIN_CURRIES_PER_ITEM = 1
MAX_CURRIES_PER_ITEM = 3
REVIEW_MAX_LENGTH = int(os.getenv("REVIEW_MAX_LENGTH", 500))
ORDER_NUMBER_MAX_ATTEMPTS = int(os.getenv("ORDER_NUMBER_MAX_ATTEMPTS", 10)) # Retries before giving up with a conflict

# Pagination defaults for order listings
CUSTOMER_ORDERS_PAGE_SIZE = int(os.getenv("CUSTOMER_ORDERS_PAGE_SIZE", 10))
MERCHANT_ORDERS_PAGE_SIZE = int(os.getenv("MERCHANT_ORDERS_PAGE_SIZE", 20))

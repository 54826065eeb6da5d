import pytest
from decimal import Decimal
from tortoise import Tortoise

from mealorder.core.db import MODELS_MODULES
from mealorder.core.security import Caller, Role
from mealorder.models.shop import Curry, Customization, MealType, Shop
from mealorder.services import shop_directory
from mealorder.services.admission import CandidateCustomization, CandidateItem, CandidateOrder


@pytest.fixture
async def db():
    """Fresh in-memory SQLite database per test."""
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": MODELS_MODULES})
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def customer():
    return Caller(user_id="cust-1", role=Role.CUSTOMER, name="Demo Customer", phone="+94 77 000 0000")


@pytest.fixture
def other_customer():
    return Caller(user_id="cust-2", role=Role.CUSTOMER, name="Other Customer")


@pytest.fixture
def merchant():
    return Caller(user_id="merch-1", role=Role.MERCHANT, name="Demo Owner")


@pytest.fixture
def other_merchant():
    return Caller(user_id="merch-2", role=Role.MERCHANT, name="Rival Owner")


@pytest.fixture
def admin():
    return Caller(user_id="admin-1", role=Role.ADMIN, name="Platform Admin")


async def open_shop(merchant_id="merch-1", **state) -> Shop:
    """Creates a seeded shop and forces its operational state."""
    shop = await shop_directory.create_shop_for_merchant(merchant_id, name="Spice Garden", location="Main Street")
    values = {"is_open": True, "accepting_orders": True, "order_limit": None, "orders_received": 0}
    values.update(state)
    await Shop.filter(id=shop.id).update(**values)
    return await Shop.get(id=shop.id)


@pytest.fixture
async def shop(db):
    return await open_shop()


async def catalog(shop: Shop):
    meals = await MealType.filter(shop_id=shop.id).order_by("position")
    curries = await Curry.filter(shop_id=shop.id).order_by("position")
    customizations = await Customization.filter(shop_id=shop.id).order_by("position")
    return meals, curries, customizations


async def simple_candidate(shop: Shop, subtotal="100", curry_count=1, with_customization=False) -> CandidateOrder:
    """One item with ``curry_count`` curries; total equals the subtotal."""
    meals, curries, customizations = await catalog(shop)
    extras = []
    if with_customization:
        extras = [CandidateCustomization(customization_id=str(customizations[0].id), quantity=2)]
    item = CandidateItem(
        meal_type_id=str(meals[0].id),
        curry_ids=[str(c.id) for c in curries[:curry_count]],
        subtotal=Decimal(subtotal),
        customizations=extras,
    )
    return CandidateOrder(items=[item], total=Decimal(subtotal))

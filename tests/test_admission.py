import pytest
from decimal import Decimal
from types import SimpleNamespace

from mealorder.core.errors import (
    InvalidOrder,
    NotAcceptingOrders,
    OrderLimitReached,
    ShopClosed,
    ShopNotFound,
)
from mealorder.services.admission import (
    CandidateCustomization,
    CandidateItem,
    CandidateOrder,
    admit,
    limit_reached,
)


def make_shop(**overrides):
    values = dict(is_open=True, accepting_orders=True, order_limit=None, orders_received=0)
    values.update(overrides)
    return SimpleNamespace(**values)


def make_item(curries=1, subtotal="100", quantity=1):
    return CandidateItem(
        meal_type_id="meal-1",
        curry_ids=[f"curry-{i}" for i in range(curries)],
        subtotal=Decimal(subtotal),
        customizations=[CandidateCustomization(customization_id="extra-1", quantity=quantity)],
    )


def make_order(*items, total=None):
    items = list(items) or [make_item()]
    if total is None:
        total = sum((i.subtotal for i in items), Decimal("0"))
    return CandidateOrder(items=items, total=Decimal(total))


def test_valid_order_is_admitted():
    assert admit(make_shop(), make_order()) is None


@pytest.mark.parametrize("shop, expected", [
    (None, ShopNotFound),
    (make_shop(is_open=False), ShopClosed),
    (make_shop(accepting_orders=False), NotAcceptingOrders),
    (make_shop(order_limit=2, orders_received=2), OrderLimitReached),
])
def test_shop_state_rejections(shop, expected):
    with pytest.raises(expected):
        admit(shop, make_order())


def test_rejections_follow_fixed_order():
    """A closed, paused, full shop with a malformed order reports ShopClosed first."""
    shop = make_shop(is_open=False, accepting_orders=False, order_limit=1, orders_received=5)
    with pytest.raises(ShopClosed):
        admit(shop, make_order(make_item(curries=0)))

    shop.is_open = True
    with pytest.raises(NotAcceptingOrders):
        admit(shop, make_order(make_item(curries=0)))

    shop.accepting_orders = True
    with pytest.raises(OrderLimitReached):
        admit(shop, make_order(make_item(curries=0)))

    shop.orders_received = 0
    with pytest.raises(InvalidOrder):
        admit(shop, make_order(make_item(curries=0)))


def test_limit_below_cap_is_admitted():
    admit(make_shop(order_limit=2, orders_received=1), make_order())


@pytest.mark.parametrize("order_limit", [None, 0])
def test_missing_or_zero_limit_means_unlimited(order_limit):
    shop = make_shop(order_limit=order_limit, orders_received=10_000)
    assert not limit_reached(shop)
    admit(shop, make_order())


@pytest.mark.parametrize("curries", [0, 4])
def test_curry_count_out_of_range(curries):
    with pytest.raises(InvalidOrder) as excinfo:
        admit(make_shop(), make_order(make_item(curries=curries)))
    assert "curries" in str(excinfo.value)


@pytest.mark.parametrize("curries", [1, 2, 3])
def test_curry_count_in_range(curries):
    admit(make_shop(), make_order(make_item(curries=curries)))


def test_empty_order_rejected():
    with pytest.raises(InvalidOrder):
        admit(make_shop(), CandidateOrder(items=[], total=Decimal("0")))


def test_negative_subtotal_rejected():
    with pytest.raises(InvalidOrder):
        admit(make_shop(), make_order(make_item(subtotal="-1"), total="-1"))


def test_negative_total_rejected():
    item = make_item(subtotal="0")
    with pytest.raises(InvalidOrder):
        admit(make_shop(), make_order(item, total="-5"))


def test_total_must_match_sum_of_subtotals():
    with pytest.raises(InvalidOrder) as excinfo:
        admit(make_shop(), make_order(make_item(subtotal="100"), make_item(subtotal="250"), total="300"))
    assert "does not match" in str(excinfo.value)

    admit(make_shop(), make_order(make_item(subtotal="100"), make_item(subtotal="250"), total="350"))


def test_customization_quantity_must_be_positive():
    with pytest.raises(InvalidOrder):
        admit(make_shop(), make_order(make_item(quantity=0)))


def test_sub_cent_amounts_rejected():
    # 0.005 + 0.005 would store as 0.00 + 0.00 against a total of 0.01
    order = make_order(make_item(subtotal="0.005"), make_item(subtotal="0.005"), total="0.01")
    with pytest.raises(InvalidOrder) as excinfo:
        admit(make_shop(), order)
    assert "decimal places" in str(excinfo.value)

    with pytest.raises(InvalidOrder):
        admit(make_shop(), make_order(make_item(subtotal="10.00"), total="10.001"))


def test_trailing_zero_amounts_accepted():
    admit(make_shop(), make_order(make_item(subtotal="99.500"), total="99.5"))

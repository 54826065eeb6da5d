"""
Admission control: decides whether a shop can take a new order right now.

The checks are pure and run in a fixed order; the first failing check wins:

1. shop missing            -> ShopNotFound
2. shop closed             -> ShopClosed
3. not accepting orders    -> NotAcceptingOrders
4. daily limit reached     -> OrderLimitReached
5. malformed order         -> InvalidOrder

Passing admission does not reserve capacity. The order store claims the slot
with ``shop_directory.increment_order_counters`` in the same transaction
that writes the order.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from mealorder.core.config import MAX_CURRIES_PER_ITEM, MIN_CURRIES_PER_ITEM, MONEY_QUANTUM
from mealorder.core.errors import (
    InvalidOrder,
    NotAcceptingOrders,
    OrderLimitReached,
    ShopClosed,
    ShopNotFound,
)
from mealorder.models.shop import Shop


@dataclass
class CandidateCustomization:
    customization_id: str
    quantity: int = 1


@dataclass
class CandidateItem:
    meal_type_id: str
    curry_ids: List[str]
    subtotal: Decimal
    customizations: List[CandidateCustomization] = field(default_factory=list)
    special_instructions: Optional[str] = None


@dataclass
class CandidateOrder:
    items: List[CandidateItem]
    total: Decimal


def limit_reached(shop: Shop) -> bool:
    # A null or zero limit means the shop takes unlimited orders
    return bool(shop.order_limit) and shop.orders_received >= shop.order_limit


def check_shop_state(shop: Optional[Shop]) -> None:
    if shop is None:
        raise ShopNotFound()
    if not shop.is_open:
        raise ShopClosed()
    if not shop.accepting_orders:
        raise NotAcceptingOrders()
    if limit_reached(shop):
        raise OrderLimitReached()


def _is_whole_cents(amount) -> bool:
    amount = Decimal(amount)
    return amount == amount.quantize(MONEY_QUANTUM)


def validate_candidate(candidate: CandidateOrder) -> None:
    if not candidate.items:
        raise InvalidOrder("At least one item is required")

    subtotal_sum = Decimal("0")
    for index, item in enumerate(candidate.items, start=1):
        curry_count = len(item.curry_ids)
        if not MIN_CURRIES_PER_ITEM <= curry_count <= MAX_CURRIES_PER_ITEM:
            raise InvalidOrder(
                f"Item {index}: {MIN_CURRIES_PER_ITEM}-{MAX_CURRIES_PER_ITEM} curries required, got {curry_count}"
            )
        if item.subtotal is None or item.subtotal < 0:
            raise InvalidOrder(f"Item {index}: valid subtotal required")
        if not _is_whole_cents(item.subtotal):
            raise InvalidOrder(f"Item {index}: subtotal {item.subtotal} has more than two decimal places")
        for custom in item.customizations:
            if custom.quantity < 1:
                raise InvalidOrder(f"Item {index}: customization quantity must be at least 1")
        subtotal_sum += Decimal(item.subtotal)

    if candidate.total is None or candidate.total < 0:
        raise InvalidOrder("Valid total required")
    if not _is_whole_cents(candidate.total):
        raise InvalidOrder(f"Order total {candidate.total} has more than two decimal places")
    if subtotal_sum != Decimal(candidate.total):
        raise InvalidOrder(f"Order total {candidate.total} does not match item subtotals {subtotal_sum}")


def admit(shop: Optional[Shop], candidate: CandidateOrder) -> None:
    """Raises the first applicable rejection; returns None when admitted."""
    check_shop_state(shop)
    validate_candidate(candidate)

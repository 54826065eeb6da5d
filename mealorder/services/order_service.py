import logging
import math
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from tortoise.exceptions import IntegrityError, OperationalError
from tortoise.transactions import in_transaction

from mealorder.core.config import (
    CUSTOMER_ORDERS_PAGE_SIZE,
    MERCHANT_ORDERS_PAGE_SIZE,
    ORDER_NUMBER_MAX_ATTEMPTS,
)
from mealorder.core.errors import (
    ConflictError,
    InvalidInputError,
    OrderLimitReached,
    OrderNotFound,
    StorageFailure,
)
from mealorder.core.security import Caller, Role, require_role
from mealorder.models.order import (
    Order,
    OrderItem,
    OrderItemCurry,
    OrderItemCustomization,
    OrderStatus,
    PaymentMethod,
)
from mealorder.models.shop import Curry, Customization, MealType, Shop
from mealorder.services import shop_directory
from mealorder.services.admission import CandidateItem, CandidateOrder, admit
from mealorder.services.order_number import generate_order_number

log = logging.getLogger("mealorder.order_service")

ORDER_PREFETCH = ('items', 'items__curries', 'items__customizations')


async def _resolve_item_snapshots(shop: Shop, items: List[CandidateItem], conn: Any) -> List[Dict[str, Any]]:
    """
    Looks up every referenced catalog entry of ``shop`` and copies it by value.
    Unknown or unavailable entries reject the whole order.
    """
    meal_types = {str(m.id): m for m in await MealType.filter(shop_id=shop.id).using_db(conn)}
    curries = {str(c.id): c for c in await Curry.filter(shop_id=shop.id).using_db(conn)}
    customizations = {str(c.id): c for c in await Customization.filter(shop_id=shop.id).using_db(conn)}

    resolved = []
    for index, item in enumerate(items, start=1):
        meal = meal_types.get(str(item.meal_type_id))
        if not meal or not meal.available:
            raise InvalidInputError(f"Item {index}: meal type {item.meal_type_id} is not available")

        item_curries = []
        for curry_id in item.curry_ids:
            curry = curries.get(str(curry_id))
            if not curry or not curry.available:
                raise InvalidInputError(f"Item {index}: curry {curry_id} is not available")
            item_curries.append(curry)

        item_customizations = []
        for custom in item.customizations:
            entry = customizations.get(str(custom.customization_id))
            if not entry or not entry.available:
                raise InvalidInputError(f"Item {index}: customization {custom.customization_id} is not available")
            item_customizations.append((entry, custom.quantity))

        resolved.append({
            "meal": meal,
            "curries": item_curries,
            "customizations": item_customizations,
            "subtotal": Decimal(item.subtotal),
            "special_instructions": item.special_instructions,
        })
    return resolved


async def _place_order(
    caller: Caller,
    shop_id,
    candidate: CandidateOrder,
    notes: Optional[str],
    payment_method: PaymentMethod,
) -> Order:
    async with in_transaction() as conn:
        shop = await shop_directory.lock_shop(shop_id, conn)
        admit(shop, candidate)

        resolved = await _resolve_item_snapshots(shop, candidate.items, conn)

        # Claim capacity atomically; a concurrent order may have taken the last slot
        if not await shop_directory.increment_order_counters(shop.id, conn):
            raise OrderLimitReached()

        async def is_taken(number: str) -> bool:
            return await Order.filter(order_number=number).using_db(conn).exists()

        order_number = await generate_order_number(is_taken)

        order = await Order.create(
            order_number=order_number,
            customer_id=caller.user_id,
            customer_name=caller.name,
            customer_phone=caller.phone,
            merchant_id=shop.merchant_id,
            merchant_name=shop.name,
            shop=shop,
            total=Decimal(candidate.total),
            status=OrderStatus.PENDING,
            payment_method=payment_method,
            notes=notes,
            using_db=conn,
        )

        for position, snap in enumerate(resolved):
            meal = snap["meal"]
            order_item = await OrderItem.create(
                order=order,
                position=position,
                meal_type_id=meal.id,
                meal_type_name=meal.name,
                meal_type_price=meal.price,
                subtotal=snap["subtotal"],
                special_instructions=snap["special_instructions"],
                using_db=conn,
            )
            for curry in snap["curries"]:
                await OrderItemCurry.create(
                    order_item=order_item,
                    curry_id=curry.id,
                    curry_name=curry.name,
                    using_db=conn,
                )
            for entry, quantity in snap["customizations"]:
                await OrderItemCustomization.create(
                    order_item=order_item,
                    customization_id=entry.id,
                    name=entry.name,
                    price=entry.price,
                    type=entry.type,
                    quantity=quantity,
                    using_db=conn,
                )
    return order


async def create_order(
    caller: Caller,
    shop_id,
    candidate: CandidateOrder,
    notes: Optional[str] = None,
    payment_method: PaymentMethod = PaymentMethod.CASH,
) -> Order:
    """
    Places an order for ``caller`` at ``shop_id``.

    Admission, slot claim, order-number allocation and the nested writes
    (header, items, curries, customizations) share one transaction; any
    failure leaves no trace of the order and no counter change.

    The free-number check cannot see numbers taken by transactions at other
    shops that have not committed yet. When the insert hits the unique
    constraint the whole placement is rolled back and retried, up to
    ``ORDER_NUMBER_MAX_ATTEMPTS`` times.
    """
    require_role(caller, Role.CUSTOMER)

    for attempt in range(1, ORDER_NUMBER_MAX_ATTEMPTS + 1):
        try:
            order = await _place_order(caller, shop_id, candidate, notes, payment_method)
        except IntegrityError as e:
            if "order_number" not in str(e):
                log.error(f"Transaction failed while placing order at shop {shop_id}: {e}")
                raise StorageFailure(f"Order creation failed: {e}") from e
            log.warning(
                f"Order number collided on insert at shop {shop_id} "
                f"(attempt {attempt}/{ORDER_NUMBER_MAX_ATTEMPTS}), retrying."
            )
            continue
        except OperationalError as e:
            log.error(f"Transaction failed while placing order at shop {shop_id}: {e}")
            raise StorageFailure(f"Order creation failed: {e}") from e

        log.info(f"Order {order.order_number} placed at shop {shop_id} by customer {caller.user_id}.")
        return await get_order_by_id(order.id)

    raise ConflictError("Could not allocate a unique order number, please retry")


async def get_order_by_id(order_id) -> Optional[Order]:
    """Fetches an order with its items, curries and customizations."""
    return await Order.get_or_none(id=order_id).prefetch_related(*ORDER_PREFETCH)


def _ownership_filter(caller: Caller) -> Dict[str, Any]:
    # Customers see their own orders, merchants their shop's, admins everything
    if caller.role == Role.CUSTOMER:
        return {"customer_id": caller.user_id}
    if caller.role == Role.MERCHANT:
        return {"merchant_id": caller.user_id}
    return {}


async def get_order_for_caller(order_id, caller: Caller) -> Order:
    order = await Order.get_or_none(id=order_id, **_ownership_filter(caller)).prefetch_related(*ORDER_PREFETCH)
    if not order:
        raise OrderNotFound(order_id)
    return order


def _pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


async def _paginate(filters: Dict[str, Any], page: int, limit: int) -> Tuple[List[Order], Dict[str, int]]:
    if page < 1 or limit < 1:
        raise InvalidInputError("page and limit must be positive")
    query = Order.filter(**filters)
    total = await query.count()
    orders = await (
        Order.filter(**filters)
        .order_by('-created_at')
        .offset((page - 1) * limit)
        .limit(limit)
        .prefetch_related(*ORDER_PREFETCH)
    )
    return orders, _pagination(page, limit, total)


async def list_customer_orders(
    caller: Caller, page: int = 1, limit: int = CUSTOMER_ORDERS_PAGE_SIZE
) -> Tuple[List[Order], Dict[str, int]]:
    require_role(caller, Role.CUSTOMER)
    return await _paginate({"customer_id": caller.user_id}, page, limit)


async def list_merchant_orders(
    caller: Caller,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = MERCHANT_ORDERS_PAGE_SIZE,
) -> Tuple[List[Order], Dict[str, int]]:
    require_role(caller, Role.MERCHANT)
    filters: Dict[str, Any] = {"merchant_id": caller.user_id}
    if status and status != "all":
        try:
            filters["status"] = OrderStatus(status)
        except ValueError:
            raise InvalidInputError(f"Unknown order status: {status}")
    return await _paginate(filters, page, limit)

"""
Order status state machine.

    pending    -> confirmed, cancelled
    confirmed  -> preparing, cancelled
    preparing  -> ready, cancelled
    ready      -> completed
    completed  -> (terminal)
    cancelled  -> (terminal)

Only the owning merchant or an admin may move an order. Each transition runs
in one transaction with the order row locked, so side effects (lifecycle
timestamp, revenue accrual on completion) commit together with the status.
"""
import logging
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from tortoise import timezone
from tortoise.exceptions import OperationalError
from tortoise.transactions import in_transaction

from mealorder.core.errors import (
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    OrderNotFound,
    StorageFailure,
)
from mealorder.core.security import Caller, Role, require_role
from mealorder.models.order import Order, OrderStatus
from mealorder.services import shop_directory
from mealorder.services.order_service import get_order_by_id

log = logging.getLogger("mealorder.status_engine")

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)

TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PREPARING: "preparing_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in ALLOWED_TRANSITIONS[OrderStatus(current)]


def apply_transition(
    order,
    target: OrderStatus,
    now: datetime,
    estimated_pickup_time: Optional[datetime] = None,
    cancellation_reason: Optional[str] = None,
) -> List[str]:
    """
    Mutates ``order`` in memory for a transition into ``target`` and returns
    the names of the fields that changed. Lifecycle timestamps are written
    only if still unset.
    """
    changed = ["status"]
    order.status = target

    stamp_field = TIMESTAMP_FIELDS.get(target)
    if stamp_field and getattr(order, stamp_field) is None:
        setattr(order, stamp_field, now)
        changed.append(stamp_field)

    if estimated_pickup_time is not None:
        order.estimated_pickup_time = estimated_pickup_time
        changed.append("estimated_pickup_time")

    if target == OrderStatus.CANCELLED and cancellation_reason:
        order.cancellation_reason = cancellation_reason
        changed.append("cancellation_reason")

    return changed


async def transition(
    order_id,
    caller: Caller,
    target_status,
    estimated_pickup_time: Optional[datetime] = None,
    cancellation_reason: Optional[str] = None,
) -> Order:
    """Moves an order to ``target_status`` and applies the transition's side effects."""
    require_role(caller, Role.MERCHANT, Role.ADMIN)
    try:
        target = OrderStatus(target_status)
    except ValueError:
        raise InvalidInputError(f"Invalid status: {target_status}")

    try:
        async with in_transaction() as conn:
            order = await Order.filter(id=order_id).select_for_update().using_db(conn).first()
            if not order:
                raise OrderNotFound(order_id)

            if caller.role == Role.MERCHANT and order.merchant_id != caller.user_id:
                raise ForbiddenError("Order belongs to another merchant")

            old_status = OrderStatus(order.status)
            if not can_transition(old_status, target):
                raise InvalidTransitionError(old_status.value, target.value)

            changed = apply_transition(
                order,
                target,
                timezone.now(),
                estimated_pickup_time=estimated_pickup_time,
                cancellation_reason=cancellation_reason,
            )
            await order.save(update_fields=changed + ['updated_at'], using_db=conn)

            # Revenue is accrued in the same transaction as the completion itself
            if target == OrderStatus.COMPLETED:
                await shop_directory.accrue_revenue(order.shop_id, order.total, conn)
    except OperationalError as e:
        log.error(f"Transaction failed while updating order {order_id}: {e}")
        raise StorageFailure(f"Status update failed: {e}") from e

    log.info(f"Order {order.order_number}: {old_status.value} -> {target.value} by {caller.role.value} {caller.user_id}.")
    return await get_order_by_id(order.id)

import logging
from typing import Optional, Tuple

from tortoise.exceptions import OperationalError
from tortoise.transactions import in_transaction

from mealorder.core.config import REVIEW_MAX_LENGTH
from mealorder.core.errors import (
    AlreadyReviewedError,
    InvalidInputError,
    NotCompletedError,
    OrderNotFound,
    ShopNotFound,
    StorageFailure,
)
from mealorder.core.security import Caller, Role, require_role
from mealorder.models.order import Order, OrderStatus
from mealorder.services import shop_directory
from mealorder.services.order_service import get_order_by_id

log = logging.getLogger("mealorder.review_service")


def fold_rating(current_rating: float, review_count: int, rating: int) -> Tuple[float, int]:
    """Adds one rating to a running average. Returns (new_average, new_count)."""
    new_count = review_count + 1
    return (current_rating * review_count + rating) / new_count, new_count


async def submit_review(order_id, caller: Caller, rating: int, review: Optional[str] = None) -> Order:
    """
    Records the customer's rating of a completed order and folds it into the
    shop's average. Order and shop are written in one transaction.
    """
    require_role(caller, Role.CUSTOMER)
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidInputError("Rating must be between 1 and 5")
    if review is not None and len(review) > REVIEW_MAX_LENGTH:
        raise InvalidInputError("Review too long")

    try:
        async with in_transaction() as conn:
            order = await (
                Order.filter(id=order_id, customer_id=caller.user_id)
                .select_for_update()
                .using_db(conn)
                .first()
            )
            if not order:
                raise OrderNotFound(order_id)
            if order.status != OrderStatus.COMPLETED:
                raise NotCompletedError()
            if order.rating is not None:
                raise AlreadyReviewedError()

            order.rating = rating
            update_fields = ['rating', 'updated_at']
            if review:
                order.review = review
                update_fields.append('review')
            await order.save(update_fields=update_fields, using_db=conn)

            shop = await shop_directory.lock_shop(order.shop_id, conn)
            if not shop:
                raise ShopNotFound(order.shop_id)
            shop.rating, shop.review_count = fold_rating(shop.rating, shop.review_count, rating)
            await shop.save(update_fields=['rating', 'review_count', 'updated_at'], using_db=conn)
    except OperationalError as e:
        log.error(f"Transaction failed while reviewing order {order_id}: {e}")
        raise StorageFailure(f"Review submission failed: {e}") from e

    log.info(f"Order {order.order_number} rated {rating}; shop {shop.id} now {shop.rating:.2f} over {shop.review_count} reviews.")
    return await get_order_by_id(order.id)

"""Domain exceptions for the order admission and lifecycle engine.

Every exception carries the HTTP status and the stable error code the API
layer reports. Services raise these; routes let them propagate to the
handlers registered in ``mealorder.core.exception_handlers``.
"""
from fastapi import status


class MealOrderError(Exception):
    """Base exception for all expected, user-facing errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(MealOrderError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ShopNotFound(NotFoundError):
    def __init__(self, shop_id=None):
        self.shop_id = shop_id
        super().__init__("Shop not found")


class OrderNotFound(NotFoundError):
    def __init__(self, order_id=None):
        self.order_id = order_id
        super().__init__("Order not found")


class ForbiddenError(MealOrderError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class InvalidInputError(MealOrderError):
    code = "invalid_input"


class InvalidOrder(InvalidInputError):
    """Raised by admission when the candidate order is malformed."""


class AdmissionRejected(MealOrderError):
    """Base for rejections caused by the shop's operational state."""


class ShopClosed(AdmissionRejected):
    code = "shop_closed"

    def __init__(self):
        super().__init__("Shop is currently closed")


class NotAcceptingOrders(AdmissionRejected):
    code = "not_accepting_orders"

    def __init__(self):
        super().__init__("Shop is not accepting orders at the moment")


class OrderLimitReached(AdmissionRejected):
    code = "order_limit_reached"

    def __init__(self):
        super().__init__("Shop has reached its daily order limit")


class InvalidTransitionError(MealOrderError):
    code = "invalid_transition"

    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot change status from {from_status} to {to_status}")


class NotCompletedError(MealOrderError):
    code = "not_completed"

    def __init__(self):
        super().__init__("Only completed orders can be reviewed")


class AlreadyReviewedError(MealOrderError):
    code = "already_reviewed"

    def __init__(self):
        super().__init__("Order already reviewed")


class ConflictError(MealOrderError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class StorageFailure(Exception):
    """A transaction or commit failed. Never shown to callers in detail."""

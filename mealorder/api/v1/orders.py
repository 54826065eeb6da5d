import logging
from fastapi import APIRouter, Depends, Query, status
from mealorder.core.config import CUSTOMER_ORDERS_PAGE_SIZE, MERCHANT_ORDERS_PAGE_SIZE
from mealorder.core.security import Caller, Role, caller_with_role, get_caller
from mealorder.schemas.response import SuccessResponse
from mealorder.schemas.order import (
    OrderDetailResponse,
    OrderListResponse,
    OrderRequest,
    OrderStatusUpdate,
    Pagination,
    ReviewRequest,
)
from mealorder.services.order_service import (
    create_order,
    get_order_for_caller,
    list_customer_orders,
    list_merchant_orders,
)
from mealorder.services.review_service import submit_review
from mealorder.services.status_engine import transition
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("mealorder.api.orders")


def _list_payload(orders, pagination) -> dict:
    return OrderListResponse(
        orders=[OrderDetailResponse.from_order(o) for o in orders],
        pagination=Pagination(**pagination),
    ).model_dump()


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_order_endpoint(
    request_data: OrderRequest,
    caller: Caller = Depends(caller_with_role(Role.CUSTOMER)),
):
    """
    Places a new order. Admission (shop open, accepting orders, daily limit)
    and the nested writes happen atomically in the service layer.
    """
    order = await create_order(
        caller,
        request_data.shop_id,
        request_data.to_candidate(),
        notes=request_data.notes,
        payment_method=request_data.payment_method,
    )
    log.info(f"Order {order.order_number} placed successfully for customer {caller.user_id}.")
    return SuccessResponse(
        message="Order placed successfully",
        data=OrderDetailResponse.from_order(order).model_dump(),
    )


@router.get("/my-orders", response_model=SuccessResponse)
async def my_orders_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(CUSTOMER_ORDERS_PAGE_SIZE, ge=1, le=100),
    caller: Caller = Depends(caller_with_role(Role.CUSTOMER)),
):
    """Lists the caller's orders, newest first."""
    orders, pagination = await list_customer_orders(caller, page=page, limit=limit)
    return SuccessResponse(data=_list_payload(orders, pagination))


@router.get("/merchant/orders", response_model=SuccessResponse)
async def merchant_orders_endpoint(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(MERCHANT_ORDERS_PAGE_SIZE, ge=1, le=100),
    caller: Caller = Depends(caller_with_role(Role.MERCHANT)),
):
    """Lists orders of the merchant's shop, optionally filtered by status."""
    orders, pagination = await list_merchant_orders(caller, status=status_filter, page=page, limit=limit)
    return SuccessResponse(data=_list_payload(orders, pagination))


@router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_endpoint(order_id: UUID, caller: Caller = Depends(get_caller)):
    """Fetches details for a specific order the caller is allowed to see."""
    order = await get_order_for_caller(order_id, caller)
    return SuccessResponse(data=OrderDetailResponse.from_order(order).model_dump())


@router.put("/{order_id}/status", response_model=SuccessResponse)
async def update_status_endpoint(
    order_id: UUID,
    payload: OrderStatusUpdate,
    caller: Caller = Depends(caller_with_role(Role.MERCHANT, Role.ADMIN)),
):
    """
    Moves the order along pending -> confirmed -> preparing -> ready -> completed
    (or to cancelled before it is ready).
    """
    order = await transition(
        order_id,
        caller,
        payload.status,
        estimated_pickup_time=payload.estimated_pickup_time,
        cancellation_reason=payload.cancellation_reason,
    )
    return SuccessResponse(
        message=f"Order status successfully updated to {order.status.value}",
        data=OrderDetailResponse.from_order(order).model_dump(),
    )


@router.put("/{order_id}/review", response_model=SuccessResponse)
async def review_order_endpoint(
    order_id: UUID,
    payload: ReviewRequest,
    caller: Caller = Depends(caller_with_role(Role.CUSTOMER)),
):
    """Adds the customer's rating and review to a completed order."""
    order = await submit_review(order_id, caller, payload.rating, payload.review)
    return SuccessResponse(
        message="Review added successfully",
        data=OrderDetailResponse.from_order(order).model_dump(),
    )

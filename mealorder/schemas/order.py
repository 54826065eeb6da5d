from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
import uuid

from mealorder.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from mealorder.models.shop import CustomizationType
from mealorder.services.admission import CandidateCustomization, CandidateItem, CandidateOrder


class CustomizationSelection(BaseModel):
    """A catalog customization chosen for an item."""
    customization_id: uuid.UUID
    quantity: int = 1


class OrderItemRequest(BaseModel):
    """Schema for a single item in the order request."""
    meal_type_id: uuid.UUID
    curry_ids: List[uuid.UUID] = Field(default_factory=list, description="1-3 curries.")
    customizations: List[CustomizationSelection] = Field(default_factory=list)
    subtotal: Decimal
    special_instructions: Optional[str] = None


class OrderRequest(BaseModel):
    """Schema for the full order placement request body."""
    shop_id: uuid.UUID
    items: List[OrderItemRequest]
    total: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None

    def to_candidate(self) -> CandidateOrder:
        return CandidateOrder(
            items=[
                CandidateItem(
                    meal_type_id=str(item.meal_type_id),
                    curry_ids=[str(c) for c in item.curry_ids],
                    subtotal=item.subtotal,
                    customizations=[
                        CandidateCustomization(customization_id=str(c.customization_id), quantity=c.quantity)
                        for c in item.customizations
                    ],
                    special_instructions=item.special_instructions,
                )
                for item in self.items
            ],
            total=self.total,
        )


class OrderStatusUpdate(BaseModel):
    """Schema for updating an order status."""
    status: OrderStatus
    estimated_pickup_time: Optional[datetime] = None
    cancellation_reason: Optional[str] = None


class ReviewRequest(BaseModel):
    rating: int
    review: Optional[str] = None


class CurrySnapshot(BaseModel):
    id: uuid.UUID
    name: str


class CustomizationSnapshot(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal
    type: CustomizationType
    quantity: int


class MealTypeSnapshot(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal


class OrderItemResponse(BaseModel):
    """Schema for an item inside the detailed order response."""
    meal_type: MealTypeSnapshot
    curries: List[CurrySnapshot]
    customizations: List[CustomizationSnapshot]
    subtotal: Decimal
    special_instructions: Optional[str] = None


class OrderDetailResponse(BaseModel):
    """Schema for fetching detailed order information."""
    id: uuid.UUID
    order_number: str
    customer_id: str
    customer_name: str
    customer_phone: Optional[str] = None
    merchant_id: str
    merchant_name: str
    shop_id: uuid.UUID
    items: List[OrderItemResponse]
    total: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    preparing_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    estimated_pickup_time: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    rating: Optional[int] = None
    review: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderDetailResponse":
        """Builds the response from an order fetched with its items prefetched."""
        items = [
            OrderItemResponse(
                meal_type=MealTypeSnapshot(id=i.meal_type_id, name=i.meal_type_name, price=i.meal_type_price),
                curries=[CurrySnapshot(id=c.curry_id, name=c.curry_name) for c in i.curries],
                customizations=[
                    CustomizationSnapshot(id=c.customization_id, name=c.name, price=c.price, type=c.type, quantity=c.quantity)
                    for c in i.customizations
                ],
                subtotal=i.subtotal,
                special_instructions=i.special_instructions,
            )
            for i in sorted(order.items, key=lambda i: i.position)
        ]
        return cls(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            merchant_id=order.merchant_id,
            merchant_name=order.merchant_name,
            shop_id=order.shop_id,
            items=items,
            total=order.total,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            notes=order.notes,
            confirmed_at=order.confirmed_at,
            preparing_at=order.preparing_at,
            ready_at=order.ready_at,
            completed_at=order.completed_at,
            cancelled_at=order.cancelled_at,
            estimated_pickup_time=order.estimated_pickup_time,
            cancellation_reason=order.cancellation_reason,
            rating=order.rating,
            review=order.review,
            created_at=order.created_at,
        )


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListResponse(BaseModel):
    orders: List[OrderDetailResponse]
    pagination: Pagination

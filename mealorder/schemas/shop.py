import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from mealorder.models.shop import CustomizationType, Shop, SpiceLevel


class ShopCreateRequest(BaseModel):
    """Creates the shop of an approved merchant."""
    merchant_id: str = Field(..., description="Identifier of the approved merchant.")
    name: str = Field(..., min_length=1)
    location: str = ""
    phone: str = ""
    description: Optional[str] = None


class ShopSettingsUpdate(BaseModel):
    is_open: Optional[bool] = None
    accepting_orders: Optional[bool] = None
    order_limit: Optional[int] = Field(None, description="Daily order cap; null or 0 disables it.")
    closing_time: Optional[str] = None


class MealTypeResponse(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal
    description: Optional[str] = None
    available: bool


class CurryResponse(BaseModel):
    id: uuid.UUID
    name: str
    available: bool
    spice_level: SpiceLevel


class CustomizationResponse(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal
    type: CustomizationType
    available: bool


class ShopResponse(BaseModel):
    id: uuid.UUID
    merchant_id: str
    name: str
    location: str
    phone: str
    description: Optional[str] = None
    is_open: bool
    accepting_orders: bool
    closing_time: Optional[str] = None
    order_limit: Optional[int] = None
    orders_received: int
    total_orders: int
    total_revenue: Decimal
    rating: float
    review_count: int
    meal_types: List[MealTypeResponse] = Field(default_factory=list)
    curries: List[CurryResponse] = Field(default_factory=list)
    customizations: List[CustomizationResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_shop(cls, shop: Shop, with_catalog: bool = True) -> "ShopResponse":
        """Catalog lists are only filled when they were prefetched."""
        data = dict(
            id=shop.id,
            merchant_id=shop.merchant_id,
            name=shop.name,
            location=shop.location,
            phone=shop.phone,
            description=shop.description,
            is_open=shop.is_open,
            accepting_orders=shop.accepting_orders,
            closing_time=shop.closing_time,
            order_limit=shop.order_limit,
            orders_received=shop.orders_received,
            total_orders=shop.total_orders,
            total_revenue=shop.total_revenue,
            rating=shop.rating,
            review_count=shop.review_count,
            created_at=shop.created_at,
        )
        if with_catalog:
            data["meal_types"] = [
                MealTypeResponse(id=m.id, name=m.name, price=m.price, description=m.description, available=m.available)
                for m in sorted(shop.meal_types, key=lambda m: m.position)
            ]
            data["curries"] = [
                CurryResponse(id=c.id, name=c.name, available=c.available, spice_level=c.spice_level)
                for c in sorted(shop.curries, key=lambda c: c.position)
            ]
            data["customizations"] = [
                CustomizationResponse(id=c.id, name=c.name, price=c.price, type=c.type, available=c.available)
                for c in sorted(shop.customizations, key=lambda c: c.position)
            ]
        return cls(**data)

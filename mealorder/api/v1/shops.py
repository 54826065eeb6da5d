import logging
from fastapi import APIRouter, Depends, status
from mealorder.core.security import Caller, Role, caller_with_role
from mealorder.schemas.response import SuccessResponse
from mealorder.schemas.shop import ShopCreateRequest, ShopResponse, ShopSettingsUpdate
from mealorder.services import shop_directory
from uuid import UUID

log = logging.getLogger("mealorder.api.shops")

router = APIRouter()


@router.get("/", response_model=SuccessResponse)
async def list_shops_endpoint():
    """Public shop listing with menus."""
    shops = await shop_directory.list_shops()
    return SuccessResponse(data=[ShopResponse.from_shop(s).model_dump() for s in shops])


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_shop_endpoint(
    shop_data: ShopCreateRequest,
    caller: Caller = Depends(caller_with_role(Role.ADMIN)),
):
    """
    Creates the shop of a merchant whose registration was approved, seeded
    with the default menu.
    """
    shop = await shop_directory.create_shop_for_merchant(
        merchant_id=shop_data.merchant_id,
        name=shop_data.name,
        location=shop_data.location,
        phone=shop_data.phone,
        description=shop_data.description,
    )
    shop = await shop_directory.get_shop_with_catalog(shop.id)
    return SuccessResponse(
        message=f"Shop '{shop.name}' created successfully.",
        data=ShopResponse.from_shop(shop).model_dump(),
    )


@router.get("/merchant/my-shop", response_model=SuccessResponse)
async def my_shop_endpoint(caller: Caller = Depends(caller_with_role(Role.MERCHANT))):
    shop = await shop_directory.get_shop_by_merchant(caller.user_id)
    shop = await shop_directory.get_shop_with_catalog(shop.id)
    return SuccessResponse(data=ShopResponse.from_shop(shop).model_dump())


@router.put("/merchant/settings", response_model=SuccessResponse)
async def update_settings_endpoint(
    settings: ShopSettingsUpdate,
    caller: Caller = Depends(caller_with_role(Role.MERCHANT)),
):
    """Updates open/accepting flags, the daily order limit and closing time."""
    shop = await shop_directory.get_shop_by_merchant(caller.user_id)
    shop = await shop_directory.update_settings(shop.id, settings.model_dump(exclude_unset=True))
    return SuccessResponse(
        message="Shop settings updated successfully",
        data=ShopResponse.from_shop(shop, with_catalog=False).model_dump(),
    )


@router.post("/reset-daily-orders", response_model=SuccessResponse)
async def reset_daily_orders_endpoint(caller: Caller = Depends(caller_with_role(Role.ADMIN))):
    """Resets every shop's daily order counter (called by the cron job)."""
    count = await shop_directory.reset_daily_counters()
    log.info(f"Daily order counts reset by admin {caller.user_id}.")
    return SuccessResponse(message="Daily order counts reset successfully", data={"shops_reset": count})


@router.get("/{shop_id}", response_model=SuccessResponse)
async def get_shop_endpoint(shop_id: UUID):
    shop = await shop_directory.get_shop_with_catalog(shop_id)
    return SuccessResponse(data=ShopResponse.from_shop(shop).model_dump())

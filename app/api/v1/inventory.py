import logging
from fastapi import APIRouter, Depends, HTTPException, status
from app.api.deps import get_inventory_ledger
from app.models.order import MenuItem, Restaurant
from app.schemas.inventory import InventoryItemRequest, InventoryResponse, RestaurantRequest, RestockRequest
from app.schemas.response import SuccessResponse
from app.services.inventory_ledger import InventoryLedger

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{menu_item_id}", response_model=InventoryResponse)
async def get_inventory_stock(menu_item_id: int):
    """Fetches the available stock for a specific menu item."""
    item = await MenuItem.get_or_none(id=menu_item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory not found for item.")

    return InventoryResponse(
        menu_item_id=item.id,
        name=item.name,
        available_qty=item.stock,
        low_stock_threshold=item.low_stock_threshold,
        is_available=item.is_available,
        updated_at=str(item.updated_at),
    )


@router.post("/restaurants", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def add_restaurant(restaurant_data: RestaurantRequest):
    """
    Creates a new restaurant record.
    """
    restaurant = await Restaurant.create(
        name=restaurant_data.name,
        city=restaurant_data.city,
        is_active=restaurant_data.is_active
    )
    log.info("Restaurant %s created (%s).", restaurant.id, restaurant.name)
    return SuccessResponse(
        message=f"Restaurant '{restaurant.name}' created successfully.",
        data={"restaurant_id": restaurant.id},
    )


@router.post("/restaurants/{restaurant_id}/items", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def add_inventory_item(restaurant_id: int, item_data: InventoryItemRequest):
    """
    Adds a new menu item with its initial stock to a specified restaurant.
    """
    restaurant = await Restaurant.get_or_none(id=restaurant_id)
    if not restaurant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Restaurant with ID {restaurant_id} not found."
        )

    menu_item = await MenuItem.create(
        restaurant=restaurant,
        name=item_data.name,
        price=item_data.price,
        category=item_data.category,
        preparation_time=item_data.preparation_time,
        stock=item_data.initial_qty,
        low_stock_threshold=item_data.threshold_qty,
        is_available=item_data.is_available,
    )
    return SuccessResponse(
        message=f"Successfully added '{item_data.name}' to {restaurant.name}.",
        data={"menu_item_id": menu_item.id, "initial_stock": menu_item.stock},
    )


@router.post("/{menu_item_id}/restock", response_model=SuccessResponse)
async def restock_item(
    menu_item_id: int,
    payload: RestockRequest,
    ledger: InventoryLedger = Depends(get_inventory_ledger),
):
    """Adds units to an item's stock with a single atomic increment."""
    new_stock = await ledger.restock(menu_item_id, payload.quantity)
    log.info("Menu item %s restocked by %s (now %s).", menu_item_id, payload.quantity, new_stock)
    return SuccessResponse(data={"menu_item_id": menu_item_id, "available_qty": new_stock})

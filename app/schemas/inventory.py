from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.core.config import LOW_STOCK_THRESHOLD


class InventoryResponse(BaseModel):
    """Schema for fetching inventory stock."""
    menu_item_id: int
    name: str
    available_qty: int
    low_stock_threshold: int
    is_available: bool
    updated_at: Optional[str] = None


class RestaurantRequest(BaseModel):
    name: str = Field(..., description="Name of the restaurant.")
    city: Optional[str] = Field(None, description="City the restaurant delivers in.")
    is_active: bool = Field(True, description="Whether the restaurant is currently active.")


class InventoryItemRequest(BaseModel):
    name: str = Field(..., description="Name of the menu item (e.g., Chicken Biryani).")
    price: Decimal = Field(..., gt=0, le=Decimal("9999.99"), description="Selling price of the item.")
    category: str = Field("main", description="Menu section.")
    preparation_time: int = Field(15, gt=0, description="Minutes needed to prepare the item.")
    initial_qty: int = Field(..., ge=0, description="Initial available stock quantity.")
    threshold_qty: int = Field(LOW_STOCK_THRESHOLD, ge=0, description="Minimum stock level before an alert is triggered.")
    is_available: bool = Field(True, description="Whether the menu item can be ordered.")


class RestockRequest(BaseModel):
    quantity: int = Field(..., gt=0, le=100000, description="Units to add to the current stock.")

"""Cart API endpoints."""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from kiosk.api.menu import load_restaurant
from kiosk.core.dependencies import api_rate_limit, get_cart_manager, get_menu_cache, get_menu_repository
from kiosk.core.errors import CartItemNotFound, SelectionRejected
from kiosk.services.cache.menu_cache import MenuDetailCache
from kiosk.services.cart.manager import CartItem, CartManager
from kiosk.services.menu.repository import MenuRepository
from kiosk.services.ordering.models import SelectedOption, SelectedToppingCategory, Violation
from kiosk.services.ordering.pricing import Totals

router = APIRouter(dependencies=[Depends(api_rate_limit)])
logger = logging.getLogger(__name__)


class AddItemRequest(BaseModel):
    menu_item_id: str
    quantity: int = 1
    selected_options: List[SelectedOption] = []
    selected_toppings: List[SelectedToppingCategory] = []
    special_instructions: Optional[str] = None


class QuantityUpdate(BaseModel):
    quantity: int = Field(..., description="New quantity; zero or less removes")


class CartResponse(BaseModel):
    items: List[CartItem]
    totals: Totals


def violations_detail(message: str, violations: List[Violation]) -> dict:
    return {"message": message, "violations": [v.model_dump() for v in violations]}


async def cart_response(restaurant_id: str, cart: CartManager, repository: MenuRepository) -> CartResponse:
    restaurant = await load_restaurant(restaurant_id, repository)
    return CartResponse(items=cart.items, totals=cart.cart_totals(restaurant))


@router.get("/api/restaurants/{restaurant_id}/cart", response_model=CartResponse)
async def get_cart(
    restaurant_id: str,
    cart: CartManager = Depends(get_cart_manager),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Get the current cart with totals."""
    return await cart_response(restaurant_id, cart, menu_repository)


@router.post("/api/restaurants/{restaurant_id}/cart/items", response_model=CartResponse, status_code=201)
async def add_cart_item(
    restaurant_id: str,
    add: AddItemRequest,
    cart: CartManager = Depends(get_cart_manager),
    menu_cache: MenuDetailCache = Depends(get_menu_cache),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Validate and add a customized item."""
    logger.info(f"[CART] Add request - restaurant: {restaurant_id}, item: {add.menu_item_id}")
    menu_item = await menu_cache.get_item(add.menu_item_id)
    if menu_item is None:
        raise HTTPException(status_code=404, detail="Menu item not found")

    result = cart.add_item(
        menu_item,
        quantity=add.quantity,
        selected_options=add.selected_options,
        selected_toppings=add.selected_toppings,
        special_instructions=add.special_instructions,
        at=datetime.now().time(),
    )
    if not result.added:
        raise HTTPException(status_code=422, detail=violations_detail("Selection rejected", result.violations))
    return await cart_response(restaurant_id, cart, menu_repository)


@router.patch("/api/restaurants/{restaurant_id}/cart/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    restaurant_id: str,
    item_id: str,
    update: QuantityUpdate,
    cart: CartManager = Depends(get_cart_manager),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Change a line's quantity."""
    try:
        cart.update_quantity(item_id, update.quantity)
    except CartItemNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await cart_response(restaurant_id, cart, menu_repository)


@router.put(
    "/api/restaurants/{restaurant_id}/cart/items/{item_id}/toppings/{category_id}/{topping_id}",
    response_model=CartResponse,
)
async def set_topping_quantity(
    restaurant_id: str,
    item_id: str,
    category_id: str,
    topping_id: str,
    update: QuantityUpdate,
    cart: CartManager = Depends(get_cart_manager),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Set a topping's quantity on a line and reprice it."""
    try:
        cart.update_topping_quantity(item_id, category_id, topping_id, update.quantity)
    except CartItemNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SelectionRejected as e:
        raise HTTPException(status_code=422, detail=violations_detail("Topping change rejected", e.violations))
    return await cart_response(restaurant_id, cart, menu_repository)


@router.delete(
    "/api/restaurants/{restaurant_id}/cart/items/{item_id}/toppings/{category_id}/{topping_id}",
    response_model=CartResponse,
)
async def remove_topping(
    restaurant_id: str,
    item_id: str,
    category_id: str,
    topping_id: str,
    cart: CartManager = Depends(get_cart_manager),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    try:
        cart.remove_topping_from_item(item_id, category_id, topping_id)
    except CartItemNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await cart_response(restaurant_id, cart, menu_repository)


@router.delete("/api/restaurants/{restaurant_id}/cart/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    restaurant_id: str,
    item_id: str,
    cart: CartManager = Depends(get_cart_manager),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    try:
        cart.remove_item(item_id)
    except CartItemNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await cart_response(restaurant_id, cart, menu_repository)


@router.delete("/api/restaurants/{restaurant_id}/cart", response_model=CartResponse)
async def clear_cart(
    restaurant_id: str,
    cart: CartManager = Depends(get_cart_manager),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    cart.clear_cart()
    return await cart_response(restaurant_id, cart, menu_repository)

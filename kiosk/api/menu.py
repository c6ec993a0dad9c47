"""Menu API endpoints."""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from kiosk.core.dependencies import (
    api_rate_limit,
    get_kiosk_session,
    get_menu_cache,
    get_menu_repository,
    get_prefetcher,
)
from kiosk.core.errors import BackendError
from kiosk.services.cache.menu_cache import MenuDetailCache
from kiosk.services.cache.prefetch import ImagePrefetcher
from kiosk.services.catalog.models import MenuItem, Restaurant
from kiosk.services.menu.repository import BatchItemResult, MenuRepository
from kiosk.services.session.kiosk import KioskSession

router = APIRouter(dependencies=[Depends(api_rate_limit)])
logger = logging.getLogger(__name__)


class MenuItemResponse(BaseModel):
    """Menu grid entry."""

    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    display_price: Decimal
    promotion_price: Optional[Decimal] = None
    has_promotion: bool = False
    image: Optional[str] = None
    in_stock: bool = True
    available: bool = True


class MenuCategoryResponse(BaseModel):
    id: str
    name: str
    items: List[MenuItemResponse] = []


class MenuResponse(BaseModel):
    """Menu response model."""

    restaurant: Restaurant
    categories: List[MenuCategoryResponse] = []


class PrefetchRequest(BaseModel):
    urls: List[str]


async def load_restaurant(restaurant_id: str, repository: MenuRepository) -> Restaurant:
    """Fetch a restaurant or fail with 404."""
    try:
        restaurant = await repository.get_restaurant(restaurant_id)
    except BackendError as e:
        logger.error(f"[MENU] Error loading restaurant {restaurant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Error loading restaurant: {e.message}")
    if restaurant is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


def _grid_entry(item: MenuItem, language: str, now) -> MenuItemResponse:
    return MenuItemResponse(
        id=item.id,
        name=item.localized_name(language),
        description=item.localized_description(language),
        price=item.price,
        display_price=item.effective_price,
        promotion_price=item.promotion_price,
        has_promotion=item.has_promotion,
        image=item.image,
        in_stock=item.in_stock,
        available=item.in_stock and item.is_available_at(now),
    )


@router.get("/api/restaurants/{restaurant_id}/menu", response_model=MenuResponse)
async def get_menu(
    restaurant_id: str,
    request: Request,
    language: Optional[str] = None,
    menu_repository: MenuRepository = Depends(get_menu_repository),
    menu_cache: MenuDetailCache = Depends(get_menu_cache),
):
    """Get the menu grid of a restaurant."""
    logger.info(
        f"[MENU] Request received - restaurant: {restaurant_id}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    restaurant = await load_restaurant(restaurant_id, menu_repository)
    lang = language or restaurant.ui_language

    try:
        categories = await menu_cache.get_menu()
    except BackendError as e:
        logger.error(f"[MENU] Error fetching menu - Error: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Error fetching menu: {e.message}")

    now = datetime.now().time()
    response = MenuResponse(
        restaurant=restaurant,
        categories=[
            MenuCategoryResponse(
                id=category.id,
                name=category.localized_name(lang),
                items=[_grid_entry(item, lang, now) for item in category.items],
            )
            for category in categories
        ],
    )
    logger.debug(f"[MENU] Successfully prepared menu response")
    return response


@router.get("/api/restaurants/{restaurant_id}/menu/items", response_model=Dict[str, BatchItemResult])
async def get_menu_items(
    restaurant_id: str,
    ids: List[str] = Query(...),
    menu_cache: MenuDetailCache = Depends(get_menu_cache),
):
    """Batch item details; ``ids`` may repeat or be comma separated."""
    item_ids = [i.strip() for value in ids for i in value.split(",") if i.strip()]
    if not item_ids:
        raise HTTPException(status_code=400, detail="No item ids given")
    return await menu_cache.get_items(item_ids)


@router.post("/api/restaurants/{restaurant_id}/images/prefetch")
async def prefetch_images(
    restaurant_id: str,
    prefetch: PrefetchRequest,
    prefetcher: ImagePrefetcher = Depends(get_prefetcher),
):
    """Queue images of items about to scroll into view."""
    queued = prefetcher.enqueue(prefetch.urls)
    if queued:
        prefetcher.start()
    return {
        "queued": queued,
        "pending": prefetcher.pending,
        "status": {url: prefetcher.status(url) for url in prefetch.urls},
    }


@router.get("/api/restaurants/{restaurant_id}/menu/items/{item_id}", response_model=MenuItem)
async def open_menu_item(
    restaurant_id: str,
    item_id: str,
    menu_cache: MenuDetailCache = Depends(get_menu_cache),
    session: KioskSession = Depends(get_kiosk_session),
):
    """Detail of the item being customized.

    Opening another item or closing the dialog while this one loads makes
    this request answer 409.
    """
    session.touch()
    try:
        result = await session.loader.load(item_id, fetch=menu_cache.get_item)
    except BackendError as e:
        logger.error(f"[MENU] Error fetching item {item_id} - Error: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Error fetching item: {e.message}")
    if result.stale:
        raise HTTPException(status_code=409, detail="Superseded by a newer request")
    if result.item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return result.item

"""Restaurant administration endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from kiosk.api.auth import require_auth
from kiosk.core.dependencies import (
    drop_menu_caches,
    get_audit_logger,
    get_backend,
    get_menu_repository,
    get_secret_store,
    get_store,
    invalidate_menu_cache,
)
from kiosk.core.errors import AuthorizationError, BackendError, InputValidationError
from kiosk.services.backend.base import Backend
from kiosk.services.cart.storage import KeyValueStore
from kiosk.services.menu.repository import MenuRepository
from kiosk.services.printing.dispatcher import PrintConfig, save_print_config
from kiosk.services.security.audit import AuditLogger
from kiosk.services.security.secrets import SecretStore
from kiosk.services.security.validation import validate_and_sanitize_input

router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_auth)])
logger = logging.getLogger(__name__)


class ApiKeyUpdate(BaseModel):
    api_key: str = Field(..., min_length=1)
    key_name: str = "primary"
    rotate: bool = False


class PrintConfigUpdate(BaseModel):
    configured_printers: List[str] = []
    browser_printing_enabled: bool = True


class StockUpdate(BaseModel):
    in_stock: bool


@router.put("/restaurants/{restaurant_id}/api-keys/{service_name}")
async def store_api_key(
    restaurant_id: str,
    service_name: str,
    update: ApiKeyUpdate,
    secrets: SecretStore = Depends(get_secret_store),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Store or rotate a service key (e.g. ``printnode``) for a restaurant."""
    try:
        service = validate_and_sanitize_input(service_name, kind="name", required=True, field="service_name")
        key_name = validate_and_sanitize_input(update.key_name, kind="name", required=True, field="key_name")
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        if update.rotate:
            await secrets.rotate_key(restaurant_id, service, update.api_key, key_name=key_name)
        else:
            await secrets.store_key(restaurant_id, service, update.api_key, key_name=key_name)
    except AuthorizationError as e:
        await audit.log_event(
            "api_key_denied",
            {"service": service, "key_name": key_name},
            severity="warning",
            restaurant_id=restaurant_id,
        )
        raise HTTPException(status_code=403, detail=f"Not allowed: {e.message}")
    except BackendError as e:
        logger.error(f"[SECRETS] Could not store key for restaurant {restaurant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Error storing key: {e.message}")

    event = "api_key_rotated" if update.rotate else "api_key_stored"
    await audit.log_event(event, {"service": service, "key_name": key_name}, restaurant_id=restaurant_id)
    return {"success": True, "service": service, "key_name": key_name, "rotated": update.rotate}


@router.post("/cache/clear")
async def clear_menu_caches():
    """Drop every restaurant's cached menu."""
    drop_menu_caches()
    logger.info("[CACHE] Menu caches cleared by admin")
    return {"success": True}


@router.put("/restaurants/{restaurant_id}/print-config", response_model=PrintConfig)
async def update_print_config(
    restaurant_id: str,
    update: PrintConfigUpdate,
    backend: Backend = Depends(get_backend),
    repository: MenuRepository = Depends(get_menu_repository),
    store: KeyValueStore = Depends(get_store),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Choose the printers receipts go to and whether the browser prints too."""
    try:
        printers = [
            validate_and_sanitize_input(p, required=True, field="configured_printers")
            for p in update.configured_printers
        ]
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    config = PrintConfig(
        restaurant_id=restaurant_id,
        configured_printers=list(dict.fromkeys(printers)),
        browser_printing_enabled=update.browser_printing_enabled,
    )
    try:
        saved = await save_print_config(backend, config)
    except BackendError as e:
        logger.error(f"[PRINT] Could not save print config for restaurant {restaurant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Error saving print config: {e.message}")

    invalidate_menu_cache(restaurant_id, repository, store)
    await audit.log_event(
        "print_config_updated",
        {"printers": len(saved.configured_printers), "browser_printing_enabled": saved.browser_printing_enabled},
        restaurant_id=restaurant_id,
    )
    return saved


async def _set_stock(
    setter, kind: str, restaurant_id: str, target_id: str, in_stock: bool, repository, store, audit
):
    try:
        found = await setter(restaurant_id, target_id, in_stock)
    except BackendError as e:
        logger.error(f"[MENU] Could not update {kind} {target_id} stock: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Error updating stock: {e.message}")
    if not found:
        raise HTTPException(status_code=404, detail=f"{kind.capitalize()} not found")

    dropped = invalidate_menu_cache(restaurant_id, repository, store)
    logger.info(f"[CACHE] {dropped} cached entries of restaurant {restaurant_id} dropped after stock change")
    await audit.log_event(
        "stock_updated", {kind: target_id, "in_stock": in_stock}, restaurant_id=restaurant_id
    )
    return {"success": True, "id": target_id, "in_stock": in_stock}


@router.patch("/restaurants/{restaurant_id}/menu-items/{item_id}/stock")
async def update_item_stock(
    restaurant_id: str,
    item_id: str,
    update: StockUpdate,
    repository: MenuRepository = Depends(get_menu_repository),
    store: KeyValueStore = Depends(get_store),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Mark a menu item sold out or back in stock."""
    return await _set_stock(
        repository.set_item_stock, "item", restaurant_id, item_id, update.in_stock, repository, store, audit
    )


@router.patch("/restaurants/{restaurant_id}/toppings/{topping_id}/stock")
async def update_topping_stock(
    restaurant_id: str,
    topping_id: str,
    update: StockUpdate,
    repository: MenuRepository = Depends(get_menu_repository),
    store: KeyValueStore = Depends(get_store),
    audit: AuditLogger = Depends(get_audit_logger),
):
    return await _set_stock(
        repository.set_topping_stock, "topping", restaurant_id, topping_id, update.in_stock, repository, store, audit
    )

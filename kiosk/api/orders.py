"""Receipt preview, checkout and order history endpoints."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from pydantic import BaseModel

from kiosk.api.auth import require_auth
from kiosk.api.menu import load_restaurant
from kiosk.core.dependencies import (
    api_rate_limit,
    get_backend,
    get_cart_manager,
    get_kiosk_session,
    get_menu_repository,
    get_order_service,
    get_secret_store,
)
from kiosk.core.errors import BackendError, InputValidationError
from kiosk.services.backend.base import Backend
from kiosk.services.cart.manager import CartManager
from kiosk.services.menu.repository import MenuRepository
from kiosk.services.ordering.pricing import Totals
from kiosk.services.persistence.orders import OrderPersistenceService
from kiosk.services.printing.dispatcher import PrintDispatcher, PrintSummary, printnode_transport_for
from kiosk.services.printing.transports import BrowserPrintOutbox, BrowserPrintTransport
from kiosk.services.receipt.document import OrderMeta, compose_receipt
from kiosk.services.receipt.renderers import render
from kiosk.services.security.secrets import SecretStore
from kiosk.services.security.validation import validate_and_sanitize_input
from kiosk.services.session.kiosk import KioskSession

router = APIRouter(dependencies=[Depends(api_rate_limit)])
logger = logging.getLogger(__name__)


class CheckoutRequest(BaseModel):
    order_type: Optional[Literal["dine-in", "takeaway"]] = None
    table_number: Optional[str] = None
    language: Optional[str] = None
    printer_ids: List[str] = []


class CheckoutResponse(BaseModel):
    order_id: str
    order_number: str
    totals: Totals
    print: PrintSummary
    browser_print: List[Dict[str, str]] = []


@router.get("/api/restaurants/{restaurant_id}/receipt/preview")
async def preview_receipt(
    restaurant_id: str,
    format: Literal["plain", "escpos", "html"] = "html",
    language: Optional[str] = None,
    cart: CartManager = Depends(get_cart_manager),
    menu_repository: MenuRepository = Depends(get_menu_repository),
    order_service: OrderPersistenceService = Depends(get_order_service),
):
    """Render the current cart as it would print."""
    restaurant = await load_restaurant(restaurant_id, menu_repository)
    meta = OrderMeta(
        order_number=await order_service.next_order_number(restaurant_id),
        language=language or restaurant.ui_language,
        placed_at=datetime.now(),
    )
    document = compose_receipt(restaurant, cart.items, meta)
    body = render(document, format)
    if format == "html":
        return HTMLResponse(body)
    if format == "escpos":
        return Response(body, media_type="application/octet-stream")
    return PlainTextResponse(body)


@router.post("/api/restaurants/{restaurant_id}/orders/checkout", response_model=CheckoutResponse)
async def checkout(
    restaurant_id: str,
    checkout_req: CheckoutRequest,
    request: Request,
    cart: CartManager = Depends(get_cart_manager),
    menu_repository: MenuRepository = Depends(get_menu_repository),
    order_service: OrderPersistenceService = Depends(get_order_service),
    backend: Backend = Depends(get_backend),
    secrets: SecretStore = Depends(get_secret_store),
    session: KioskSession = Depends(get_kiosk_session),
):
    """Place the order: persist it, print the receipt and empty the cart."""
    logger.info(
        f"[CHECKOUT] Request received - restaurant: {restaurant_id}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    if not cart.items:
        raise HTTPException(status_code=400, detail="Cart is empty")
    restaurant = await load_restaurant(restaurant_id, menu_repository)
    try:
        table_number = validate_and_sanitize_input(checkout_req.table_number, kind="name", field="table_number")
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        meta = OrderMeta(
            order_number=await order_service.next_order_number(restaurant_id),
            order_type=checkout_req.order_type,
            table_number=table_number or None,
            language=checkout_req.language or restaurant.ui_language,
            placed_at=datetime.now(),
        )
        document = compose_receipt(restaurant, cart.items, meta)
        order = await order_service.create_order(restaurant_id, document, cart.items)

        outbox = BrowserPrintOutbox()
        dispatcher = PrintDispatcher(
            backend,
            transport=await printnode_transport_for(secrets, restaurant_id),
            browser=BrowserPrintTransport(outbox.publish),
        )
        summary = await dispatcher.print_receipt(restaurant_id, document, checkout_req.printer_ids)
        await order_service.confirm_order(order["id"])
    except BackendError as e:
        logger.error(
            f"[CHECKOUT] Error placing order - restaurant: {restaurant_id}, Error: {e}",
            exc_info=True,
        )
        raise HTTPException(status_code=502, detail=f"Error placing order: {e.message}")

    cart.clear_cart()
    session.end()
    logger.info(
        f"[CHECKOUT] Order {meta.order_number} placed - total {document.totals.total}, "
        f"printed {summary.summary['successful']}/{summary.summary['total']}"
    )
    return CheckoutResponse(
        order_id=str(order["id"]),
        order_number=meta.order_number,
        totals=document.totals,
        print=summary,
        browser_print=outbox.jobs,
    )


@router.get("/api/restaurants/{restaurant_id}/orders")
async def get_order_history(
    restaurant_id: str,
    limit: int = Query(100, ge=1, le=1000),
    _: bool = Depends(require_auth),
    order_service: OrderPersistenceService = Depends(get_order_service),
) -> List[Dict[str, Any]]:
    """Get the restaurant's orders, newest first."""
    logger.info(f"[ORDERS HISTORY] Request received - restaurant: {restaurant_id}, limit: {limit}")
    try:
        orders = await order_service.list_orders(restaurant_id, limit=limit)
    except BackendError as e:
        logger.error(
            f"[ORDERS HISTORY] Error fetching order history - limit: {limit}, Error: {e}",
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail=f"Error fetching order history: {e.message}")
    logger.info(f"[ORDERS HISTORY] Found {len(orders)} orders")
    return orders

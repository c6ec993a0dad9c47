"""Order persistence service."""
import logging
from typing import Any, Dict, List, Optional, Sequence

from kiosk.services.backend.base import Backend
from kiosk.services.cart.manager import CartItem
from kiosk.services.receipt.document import ReceiptDocument

logger = logging.getLogger(__name__)


def order_items_payload(items: Sequence[CartItem]) -> List[Dict[str, Any]]:
    """Cart lines as stored in the order's ``items`` column."""
    return [
        {
            "menu_item_id": item.menu_item.id,
            "name": item.menu_item.name,
            "quantity": item.quantity,
            "item_price": str(item.item_price),
            "selected_options": [o.model_dump() for o in item.selected_options],
            "selected_toppings": [t.model_dump() for t in item.selected_toppings],
            "special_instructions": item.special_instructions,
        }
        for item in items
    ]


class OrderPersistenceService:
    """Service for persisting order data."""

    def __init__(self, backend: Backend):
        self.backend = backend

    async def next_order_number(self, restaurant_id: str) -> str:
        """Sequential per restaurant: existing order count plus one."""
        count = await self.backend.count("orders", {"restaurant_id": restaurant_id})
        return str(count + 1)

    async def create_order(
        self,
        restaurant_id: str,
        document: ReceiptDocument,
        items: Sequence[CartItem],
    ) -> Dict[str, Any]:
        """Create a new order from a composed receipt."""
        row = await self.backend.insert(
            "orders",
            {
                "restaurant_id": restaurant_id,
                "order_number": document.meta.order_number,
                "order_type": document.meta.order_type,
                "table_number": document.meta.table_number,
                "status": "pending",
                "subtotal": document.totals.subtotal,
                "tax": document.totals.tax,
                "total": document.totals.total,
                "items": order_items_payload(items),
            },
        )
        logger.info(
            f"[ORDERS] Created order {document.meta.order_number} for restaurant {restaurant_id} "
            f"- total {document.totals.total}"
        )
        return row

    async def confirm_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Mark an order as completed."""
        rows = await self.backend.update("orders", {"status": "completed"}, {"id": order_id})
        return rows[0] if rows else None

    async def get_order_by_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        return await self.backend.query_one("orders", {"id": order_id})

    async def list_orders(self, restaurant_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Orders of a restaurant, newest first."""
        return await self.backend.query(
            "orders", {"restaurant_id": restaurant_id}, order_by=["-created_at"], limit=limit
        )

"""Menu repository."""
import asyncio
import logging
import time
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from kiosk.core.config import settings
from kiosk.core.errors import BackendError
from kiosk.services.backend.base import Backend, Row
from kiosk.services.catalog.builders import (
    category_from_row,
    choice_from_row,
    menu_category_from_row,
    menu_item_from_row,
    option_from_row,
    restaurant_from_row,
    topping_from_row,
)
from kiosk.services.catalog.models import MenuCategory, MenuItem, Restaurant

logger = logging.getLogger(__name__)


class BatchItemResult(BaseModel):
    """Outcome of fetching one item inside a batch."""

    success: bool
    item: Optional[MenuItem] = None
    error: Optional[str] = None


class MenuRepository:
    """Repository for menu operations."""

    def __init__(self, backend: Backend):
        self.backend = backend

    async def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        """Get restaurant settings by id."""
        row = await self.backend.query_one("restaurants", {"id": restaurant_id})
        if row is None:
            return None
        return restaurant_from_row(
            row,
            default_tax_rate=settings.default_tax_rate,
            default_currency=settings.default_currency,
        )

    async def get_menu(self, restaurant_id: str) -> List[MenuCategory]:
        """Get menu categories with their items (without options) in display order."""
        category_rows = await self.backend.query(
            "menu_categories", {"restaurant_id": restaurant_id}, order_by=["display_order"]
        )
        if not category_rows:
            return []
        item_rows = await self.backend.query(
            "menu_items",
            {"category_id": [row["id"] for row in category_rows]},
            order_by=["display_order"],
        )
        categories = []
        for row in category_rows:
            items = [menu_item_from_row(r) for r in item_rows if r["category_id"] == row["id"]]
            categories.append(menu_category_from_row(row, items))
        logger.info(
            f"[MENU] Loaded menu for {restaurant_id} - {len(categories)} categories, {len(item_rows)} items"
        )
        return categories

    async def get_item_with_options(self, item_id: str) -> Optional[MenuItem]:
        """Get a single fully-assembled menu item."""
        result = (await self.get_items_with_options([item_id]))[item_id]
        return result.item if result.success else None

    async def get_items_with_options(self, item_ids: Iterable[str]) -> Dict[str, BatchItemResult]:
        """Fetch several menu items with options and toppings in batched queries.

        Every id resolves independently: ids that do not exist, or whose rows
        cannot be assembled, come back with ``success=False``. A failing query
        marks every id of the batch as failed instead of raising.
        """
        unique_ids = list(dict.fromkeys(item_ids))
        if not unique_ids:
            return {}
        started = time.perf_counter()
        logger.info(f"[MENU] Batch fetching {len(unique_ids)} menu items")

        try:
            item_rows, option_rows, relation_rows = await asyncio.gather(
                self.backend.query("menu_items", {"id": unique_ids}),
                self.backend.query(
                    "menu_item_options", {"menu_item_id": unique_ids}, order_by=["display_order"]
                ),
                self.backend.query(
                    "menu_item_topping_categories",
                    {"menu_item_id": unique_ids},
                    order_by=["display_order"],
                ),
            )
            option_ids = [row["id"] for row in option_rows]
            category_ids = list(dict.fromkeys(row["topping_category_id"] for row in relation_rows))
            choice_rows, category_rows, topping_rows = await asyncio.gather(
                self.backend.query("option_choices", {"option_id": option_ids}, order_by=["display_order"]),
                self.backend.query("topping_categories", {"id": category_ids}),
                self.backend.query("toppings", {"category_id": category_ids}, order_by=["display_order"]),
            )
        except BackendError as e:
            logger.error(f"[MENU] Batch fetch failed: {e}")
            return {item_id: BatchItemResult(success=False, error=str(e)) for item_id in unique_ids}

        results = {item_id: BatchItemResult(success=False, error="Item not found") for item_id in unique_ids}
        categories_by_id = {row["id"]: row for row in category_rows}
        for row in item_rows:
            try:
                item = self._assemble(
                    row, option_rows, choice_rows, relation_rows, categories_by_id, topping_rows
                )
                results[str(row["id"])] = BatchItemResult(success=True, item=item)
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                logger.error(f"[MENU] Error assembling item {row.get('id')}: {e}", exc_info=True)
                results[str(row["id"])] = BatchItemResult(success=False, error=f"Processing error: {e}")

        elapsed_ms = (time.perf_counter() - started) * 1000
        found = sum(1 for r in results.values() if r.success)
        logger.info(f"[MENU] Batch fetch completed in {elapsed_ms:.2f}ms - {found}/{len(unique_ids)} found")
        return results

    async def set_item_stock(self, restaurant_id: str, item_id: str, in_stock: bool) -> bool:
        """Mark a menu item of the restaurant in or out of stock; False if it has no such item."""
        row = await self.backend.query_one("menu_items", {"id": item_id})
        if row is None:
            return False
        owner = await self.backend.query_one(
            "menu_categories", {"id": row["category_id"], "restaurant_id": restaurant_id}
        )
        if owner is None:
            return False
        await self.backend.update("menu_items", {"in_stock": in_stock}, {"id": item_id})
        logger.info(f"[MENU] Item {item_id} of {restaurant_id} in_stock={in_stock}")
        return True

    async def set_topping_stock(self, restaurant_id: str, topping_id: str, in_stock: bool) -> bool:
        row = await self.backend.query_one("toppings", {"id": topping_id})
        if row is None:
            return False
        owner = await self.backend.query_one(
            "topping_categories", {"id": row["category_id"], "restaurant_id": restaurant_id}
        )
        if owner is None:
            return False
        await self.backend.update("toppings", {"in_stock": in_stock}, {"id": topping_id})
        logger.info(f"[MENU] Topping {topping_id} of {restaurant_id} in_stock={in_stock}")
        return True

    def _assemble(
        self,
        row: Row,
        option_rows: List[Row],
        choice_rows: List[Row],
        relation_rows: List[Row],
        categories_by_id: Dict[str, Row],
        topping_rows: List[Row],
    ) -> MenuItem:
        options = []
        for option_row in option_rows:
            if option_row["menu_item_id"] != row["id"]:
                continue
            choices = [choice_from_row(c) for c in choice_rows if c["option_id"] == option_row["id"]]
            options.append(option_from_row(option_row, choices))

        categories = []
        for relation in relation_rows:
            if relation["menu_item_id"] != row["id"]:
                continue
            category_row = categories_by_id.get(relation["topping_category_id"])
            if category_row is None:
                logger.warning(
                    f"[MENU] Item {row['id']} references missing topping category "
                    f"{relation['topping_category_id']}"
                )
                continue
            toppings = [topping_from_row(t) for t in topping_rows if t["category_id"] == category_row["id"]]
            categories.append(
                category_from_row(category_row, toppings, display_order=int(relation.get("display_order") or 0))
            )
        categories.sort(key=lambda c: c.display_order)
        return menu_item_from_row(row, options, categories)

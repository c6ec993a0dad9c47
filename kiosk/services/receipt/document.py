"""Receipt document model shared by every renderer."""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel

from kiosk.services.cart.manager import CartItem
from kiosk.services.catalog.models import Restaurant
from kiosk.services.ordering.pricing import Totals, compute_totals, quantize_money, topping_quantity
from kiosk.services.receipt.i18n import DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)


class OrderMeta(BaseModel):
    """Order details printed on the receipt."""

    order_number: str
    order_type: Optional[Literal["dine-in", "takeaway"]] = None
    table_number: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    placed_at: datetime


class ReceiptModifier(BaseModel):
    """An option choice or topping printed under its item."""

    kind: Literal["option", "topping"]
    name: str
    quantity: int = 1
    amount: Decimal = Decimal("0")


class ReceiptLine(BaseModel):
    quantity: int
    name: str
    unit_price: Decimal
    line_total: Decimal
    modifiers: List[ReceiptModifier] = []
    special_instructions: Optional[str] = None


class ReceiptDocument(BaseModel):
    """Everything a renderer needs; totals are computed exactly once."""

    restaurant_name: str
    location: Optional[str] = None
    currency: str
    meta: OrderMeta
    lines: List[ReceiptLine]
    totals: Totals


def _modifiers(item: CartItem, language: str) -> List[ReceiptModifier]:
    menu_item = item.menu_item
    modifiers: List[ReceiptModifier] = []

    for selection in item.selected_options:
        option = menu_item.find_option(selection.option_id)
        if option is None:
            continue
        for choice_id in dict.fromkeys(selection.choice_ids):
            choice = option.find_choice(choice_id)
            if choice is None:
                continue
            modifiers.append(
                ReceiptModifier(kind="option", name=choice.localized_name(language), amount=choice.price_delta)
            )

    for selection in item.selected_toppings:
        category = menu_item.find_category(selection.category_id)
        if category is None:
            continue
        for topping_id in dict.fromkeys(selection.topping_ids):
            topping = category.find_topping(topping_id)
            if topping is None:
                continue
            quantity = topping_quantity(category, selection, topping_id)
            modifiers.append(
                ReceiptModifier(
                    kind="topping",
                    name=topping.localized_name(language),
                    quantity=quantity,
                    amount=quantize_money(topping.price * quantity),
                )
            )
    return modifiers


def compose_receipt(restaurant: Restaurant, items: Sequence[CartItem], meta: OrderMeta) -> ReceiptDocument:
    """Build the receipt of a cart.

    Lines keep cart order. Totals use the restaurant's tax rate on the
    subtotal of unit price times quantity.
    """
    lines = [
        ReceiptLine(
            quantity=item.quantity,
            name=item.menu_item.localized_name(meta.language),
            unit_price=item.item_price,
            line_total=item.line_total,
            modifiers=_modifiers(item, meta.language),
            special_instructions=item.special_instructions,
        )
        for item in items
    ]
    totals = compute_totals(((item.item_price, item.quantity) for item in items), restaurant.tax_rate)
    logger.info(
        f"[RECEIPT] Composed order {meta.order_number} for {restaurant.name}: "
        f"{len(lines)} lines, total {totals.total}"
    )
    return ReceiptDocument(
        restaurant_name=restaurant.name,
        location=restaurant.location,
        currency=restaurant.currency,
        meta=meta,
        lines=lines,
        totals=totals,
    )

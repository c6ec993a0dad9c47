"""Item and cart pricing.

All amounts are ``Decimal``. Sums are exact and only the final unit price,
the tax and the totals are rounded to cents (half up).
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Tuple

from pydantic import BaseModel

from kiosk.services.catalog.models import MenuItem, ToppingCategory
from kiosk.services.ordering.models import SelectedOption, SelectedToppingCategory

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    """Round an amount to cents."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def topping_quantity(category: ToppingCategory, selection: SelectedToppingCategory, topping_id: str) -> int:
    """Quantity billed for a selected topping."""
    if not category.allow_multiple_same_topping:
        return 1
    return max(selection.topping_quantities.get(topping_id, 1), 0)


def compute_item_price(
    menu_item: MenuItem,
    selected_options: Iterable[SelectedOption],
    selected_toppings: Iterable[SelectedToppingCategory],
) -> Decimal:
    """Compute the unit price of a customized item.

    Starts from the item's effective price, adds every chosen option
    choice delta and every selected topping price times its quantity.
    Ids that are not part of the item's definition are skipped with a
    warning.
    """
    price = menu_item.effective_price

    for selection in selected_options:
        option = menu_item.find_option(selection.option_id)
        if option is None:
            logger.warning(f"[PRICING] Unknown option {selection.option_id} on item {menu_item.id}")
            continue
        for choice_id in dict.fromkeys(selection.choice_ids):
            choice = option.find_choice(choice_id)
            if choice is None:
                logger.warning(f"[PRICING] Unknown choice {choice_id} for option {option.id}")
                continue
            price += choice.price_delta

    for selection in selected_toppings:
        category = menu_item.find_category(selection.category_id)
        if category is None:
            logger.warning(
                f"[PRICING] Unknown topping category {selection.category_id} on item {menu_item.id}"
            )
            continue
        for topping_id in dict.fromkeys(selection.topping_ids):
            topping = category.find_topping(topping_id)
            if topping is None:
                logger.warning(f"[PRICING] Unknown topping {topping_id} in category {category.id}")
                continue
            price += topping.price * topping_quantity(category, selection, topping_id)

    return quantize_money(price)


def line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return quantize_money(unit_price * quantity)


class Totals(BaseModel):
    """Subtotal, tax and total of a set of lines."""

    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    item_count: int


def compute_totals(lines: Iterable[Tuple[Decimal, int]], tax_rate: Decimal) -> Totals:
    """Compute totals from ``(unit_price, quantity)`` pairs.

    ``tax_rate`` is a percentage applied to the subtotal.
    """
    pairs: List[Tuple[Decimal, int]] = list(lines)
    rate = Decimal(str(tax_rate))
    subtotal = quantize_money(sum((unit * qty for unit, qty in pairs), Decimal("0")))
    tax = quantize_money(subtotal * rate / Decimal(100))
    return Totals(
        subtotal=subtotal,
        tax_rate=rate,
        tax=tax,
        total=subtotal + tax,
        item_count=sum(qty for _, qty in pairs),
    )

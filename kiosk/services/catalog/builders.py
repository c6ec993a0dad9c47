"""Assemble catalog models from backend rows."""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from kiosk.db.models import SUPPORTED_LANGUAGES
from kiosk.services.backend.base import Row
from kiosk.services.catalog.models import (
    MenuCategory,
    MenuItem,
    MenuItemOption,
    OptionChoice,
    Restaurant,
    Topping,
    ToppingCategory,
)


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def translations(row: Row, field: str) -> Dict[str, str]:
    """Collect the non-empty ``<field>_<lang>`` columns of a row."""
    found = {}
    for lang in SUPPORTED_LANGUAGES:
        value = row.get(f"{field}_{lang}")
        if value:
            found[lang] = value
    return found


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def choice_from_row(row: Row) -> OptionChoice:
    return OptionChoice(
        id=str(row["id"]),
        name=row["name"],
        price=to_decimal(row.get("price")),
        names=translations(row, "name"),
    )


def option_from_row(row: Row, choices: List[OptionChoice]) -> MenuItemOption:
    return MenuItemOption(
        id=str(row["id"]),
        name=row["name"],
        required=bool(row.get("required")),
        multiple=bool(row.get("multiple")),
        choices=choices,
        names=translations(row, "name"),
    )


def topping_from_row(row: Row) -> Topping:
    in_stock = row.get("in_stock")
    return Topping(
        id=str(row["id"]),
        name=row["name"],
        price=to_decimal(row.get("price")) or Decimal("0"),
        tax_percentage=to_decimal(row.get("tax_percentage")),
        in_stock=True if in_stock is None else bool(in_stock),
        names=translations(row, "name"),
    )


def category_from_row(row: Row, toppings: List[Topping], display_order: int = 0) -> ToppingCategory:
    return ToppingCategory(
        id=str(row["id"]),
        name=row["name"],
        description=row.get("description"),
        min_selections=int(row.get("min_selections") or 0),
        max_selections=int(row.get("max_selections") or 0),
        allow_multiple_same_topping=bool(row.get("allow_multiple_same_topping")),
        show_if_selection_type=_as_list(row.get("show_if_selection_type")),
        show_if_selection_id=_as_list(row.get("show_if_selection_id")),
        display_order=display_order,
        toppings=toppings,
        names=translations(row, "name"),
        descriptions=translations(row, "description"),
    )


def menu_item_from_row(
    row: Row,
    options: Optional[List[MenuItemOption]] = None,
    topping_categories: Optional[List[ToppingCategory]] = None,
) -> MenuItem:
    in_stock = row.get("in_stock")
    return MenuItem(
        id=str(row["id"]),
        category_id=row.get("category_id"),
        name=row["name"],
        description=row.get("description"),
        price=to_decimal(row["price"]),
        promotion_price=to_decimal(row.get("promotion_price")),
        tax_percentage=to_decimal(row.get("tax_percentage")),
        image=row.get("image"),
        in_stock=True if in_stock is None else bool(in_stock),
        available_from=row.get("available_from"),
        available_until=row.get("available_until"),
        display_order=int(row.get("display_order") or 0),
        options=options or [],
        topping_categories=topping_categories or [],
        names=translations(row, "name"),
        descriptions=translations(row, "description"),
    )


def menu_category_from_row(row: Row, items: List[MenuItem]) -> MenuCategory:
    return MenuCategory(
        id=str(row["id"]),
        name=row["name"],
        display_order=int(row.get("display_order") or 0),
        names=translations(row, "name"),
        items=items,
    )


def restaurant_from_row(row: Row, default_tax_rate: float = 10.0, default_currency: str = "EUR") -> Restaurant:
    tax_rate = to_decimal(row.get("tax_rate"))
    return Restaurant(
        id=str(row["id"]),
        name=row["name"],
        location=row.get("location"),
        currency=(row.get("currency") or default_currency).upper(),
        tax_rate=tax_rate if tax_rate is not None else Decimal(str(default_tax_rate)),
        ui_language=row.get("ui_language") or "fr",
    )

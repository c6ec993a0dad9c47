"""Catalog models: restaurants, menu items, options and toppings."""
from datetime import time
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


def localize(base: str, translations: Dict[str, str], lang: Optional[str]) -> str:
    """Return the translation for ``lang``, falling back to the base text."""
    if lang and translations.get(lang):
        return translations[lang]
    return base


def parse_hhmm(value: Optional[str]) -> Optional[time]:
    """Parse ``HH:MM`` (or ``HH:MM:SS``) into a time, None when empty."""
    if not value:
        return None
    parts = [int(p) for p in str(value).split(":")]
    return time(parts[0], parts[1] if len(parts) > 1 else 0)


class OptionChoice(BaseModel):
    """One selectable value of an option."""

    id: str
    name: str
    price: Optional[Decimal] = None
    names: Dict[str, str] = {}

    @property
    def price_delta(self) -> Decimal:
        return self.price if self.price is not None else Decimal("0")

    def localized_name(self, lang: Optional[str] = None) -> str:
        return localize(self.name, self.names, lang)


class MenuItemOption(BaseModel):
    """A configurable attribute of a menu item (e.g. size)."""

    id: str
    name: str
    required: bool = False
    multiple: bool = False
    choices: List[OptionChoice] = []
    names: Dict[str, str] = {}

    def find_choice(self, choice_id: str) -> Optional[OptionChoice]:
        return next((c for c in self.choices if c.id == choice_id), None)

    def localized_name(self, lang: Optional[str] = None) -> str:
        return localize(self.name, self.names, lang)


class Topping(BaseModel):
    """A priced add-on inside a topping category."""

    id: str
    name: str
    price: Decimal = Decimal("0")
    tax_percentage: Optional[Decimal] = None
    in_stock: bool = True
    names: Dict[str, str] = {}

    def localized_name(self, lang: Optional[str] = None) -> str:
        return localize(self.name, self.names, lang)


class ToppingCategory(BaseModel):
    """A reusable group of toppings with selection-count rules."""

    id: str
    name: str
    description: Optional[str] = None
    min_selections: int = 0
    max_selections: int = 0  # 0 = unlimited
    allow_multiple_same_topping: bool = False
    show_if_selection_type: List[str] = []
    show_if_selection_id: List[str] = []
    display_order: int = 0
    toppings: List[Topping] = []
    names: Dict[str, str] = {}
    descriptions: Dict[str, str] = {}

    @property
    def required(self) -> bool:
        return self.min_selections > 0

    @property
    def is_conditional(self) -> bool:
        return bool(self.show_if_selection_type) and bool(self.show_if_selection_id)

    def find_topping(self, topping_id: str) -> Optional[Topping]:
        return next((t for t in self.toppings if t.id == topping_id), None)

    def localized_name(self, lang: Optional[str] = None) -> str:
        return localize(self.name, self.names, lang)


class MenuItem(BaseModel):
    """A menu item together with its options and topping categories."""

    id: str
    category_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: Decimal
    promotion_price: Optional[Decimal] = None
    tax_percentage: Optional[Decimal] = None
    image: Optional[str] = None
    in_stock: bool = True
    available_from: Optional[str] = None
    available_until: Optional[str] = None
    display_order: int = 0
    options: List[MenuItemOption] = []
    topping_categories: List[ToppingCategory] = []
    names: Dict[str, str] = {}
    descriptions: Dict[str, str] = {}

    @property
    def has_promotion(self) -> bool:
        return self.promotion_price is not None and self.promotion_price < self.price

    @property
    def effective_price(self) -> Decimal:
        """Base price used both for display and for cart pricing."""
        return self.promotion_price if self.has_promotion else self.price

    def is_available_at(self, moment: time) -> bool:
        """Check the availability window; windows may wrap midnight."""
        start = parse_hhmm(self.available_from)
        end = parse_hhmm(self.available_until)
        if start is None or end is None:
            return True
        if start <= end:
            return start <= moment <= end
        return moment >= start or moment <= end

    def find_option(self, option_id: str) -> Optional[MenuItemOption]:
        return next((o for o in self.options if o.id == option_id), None)

    def find_category(self, category_id: str) -> Optional[ToppingCategory]:
        return next((c for c in self.topping_categories if c.id == category_id), None)

    def localized_name(self, lang: Optional[str] = None) -> str:
        return localize(self.name, self.names, lang)

    def localized_description(self, lang: Optional[str] = None) -> Optional[str]:
        if self.description is None and not self.descriptions:
            return None
        return localize(self.description or "", self.descriptions, lang)


class MenuCategory(BaseModel):
    """A section of the menu grid."""

    id: str
    name: str
    display_order: int = 0
    names: Dict[str, str] = {}
    items: List[MenuItem] = []

    def localized_name(self, lang: Optional[str] = None) -> str:
        return localize(self.name, self.names, lang)


class Restaurant(BaseModel):
    """Restaurant (tenant) settings relevant to ordering and receipts."""

    id: str
    name: str
    location: Optional[str] = None
    currency: str = "EUR"
    tax_rate: Decimal = Field(default=Decimal("10"))  # percent
    ui_language: str = "fr"

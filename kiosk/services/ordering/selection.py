"""In-progress customization state for one menu item."""
import logging
from datetime import time
from decimal import Decimal
from typing import List, Optional, Sequence

from kiosk.services.catalog.models import MenuItem, ToppingCategory
from kiosk.services.ordering.models import (
    SelectedOption,
    SelectedToppingCategory,
    ValidationResult,
)
from kiosk.services.ordering.pricing import compute_item_price
from kiosk.services.ordering.validator import below_minimum, can_select_topping, validate_selection
from kiosk.services.ordering.visibility import (
    is_category_visible,
    prune_hidden_selections,
    visible_categories,
)

logger = logging.getLogger(__name__)


class SelectionState:
    """Tracks the options and toppings chosen for a single item.

    Every mutation keeps the selection consistent: single-select options
    hold at most one choice, categories never exceed their maximum, and
    selections inside categories that become hidden are cleared.
    Mutators return False when the change is rejected.
    """

    def __init__(
        self,
        menu_item: MenuItem,
        selected_options: Optional[Sequence[SelectedOption]] = None,
        selected_toppings: Optional[Sequence[SelectedToppingCategory]] = None,
    ):
        self.menu_item = menu_item
        self.options: List[SelectedOption] = [o.model_copy(deep=True) for o in selected_options or []]
        self.toppings: List[SelectedToppingCategory] = [
            t.model_copy(deep=True) for t in selected_toppings or []
        ]
        self._settle()

    def _option_entry(self, option_id: str) -> SelectedOption:
        entry = next((o for o in self.options if o.option_id == option_id), None)
        if entry is None:
            entry = SelectedOption(option_id=option_id)
            self.options.append(entry)
        return entry

    def _topping_entry(self, category_id: str) -> SelectedToppingCategory:
        entry = next((t for t in self.toppings if t.category_id == category_id), None)
        if entry is None:
            entry = SelectedToppingCategory(category_id=category_id)
            self.toppings.append(entry)
        return entry

    def _settle(self) -> None:
        for entry in self.options:
            entry.choice_ids = list(dict.fromkeys(entry.choice_ids))
        for entry in self.toppings:
            quantities = entry.topping_quantities
            entry.topping_ids = [t for t in dict.fromkeys(entry.topping_ids) if quantities.get(t, 1) > 0]
            entry.topping_quantities = {t: q for t, q in quantities.items() if t in entry.topping_ids}
        self.options = [o for o in self.options if o.choice_ids]
        self.toppings = [t for t in self.toppings if t.topping_ids]
        self.toppings = prune_hidden_selections(self.menu_item, self.options, self.toppings)

    def toggle_choice(self, option_id: str, choice_id: str) -> bool:
        """Select or deselect a choice; single-select options replace the previous choice."""
        option = self.menu_item.find_option(option_id)
        if option is None or option.find_choice(choice_id) is None:
            logger.warning(f"[SELECTION] Unknown choice {choice_id} for option {option_id}")
            return False
        entry = self._option_entry(option_id)
        if choice_id in entry.choice_ids:
            entry.choice_ids.remove(choice_id)
        elif option.multiple:
            entry.choice_ids.append(choice_id)
        else:
            entry.choice_ids = [choice_id]
        self._settle()
        return True

    def _selectable(self, category_id: str, topping_id: str) -> Optional[ToppingCategory]:
        category = self.menu_item.find_category(category_id)
        if category is None:
            logger.warning(f"[SELECTION] Unknown topping category {category_id}")
            return None
        if not is_category_visible(self.menu_item, category, self.options, self.toppings):
            logger.debug(f"[SELECTION] Category {category_id} is hidden")
            return None
        topping = category.find_topping(topping_id)
        if topping is None or not topping.in_stock:
            return None
        return category

    def toggle_topping(self, category_id: str, topping_id: str) -> bool:
        """Select or deselect a topping; selecting beyond the maximum is rejected."""
        category = self._selectable(category_id, topping_id)
        if category is None:
            return False
        entry = self._topping_entry(category_id)
        if topping_id in entry.topping_ids:
            entry.topping_ids.remove(topping_id)
            entry.topping_quantities.pop(topping_id, None)
        else:
            if not can_select_topping(self.menu_item, category_id, topping_id, self.toppings):
                logger.debug(f"[SELECTION] Max selections reached in {category_id}")
                return False
            entry.topping_ids.append(topping_id)
            if category.allow_multiple_same_topping:
                entry.topping_quantities[topping_id] = 1
        self._settle()
        return True

    def set_topping_quantity(self, category_id: str, topping_id: str, quantity: int) -> bool:
        """Set how many times a topping is added; zero or less removes it."""
        entry = next((t for t in self.toppings if t.category_id == category_id), None)
        if quantity <= 0:
            if entry is None or topping_id not in entry.topping_ids:
                return False
            entry.topping_ids.remove(topping_id)
            entry.topping_quantities.pop(topping_id, None)
            self._settle()
            return True

        category = self._selectable(category_id, topping_id)
        if category is None:
            return False
        if quantity > 1 and not category.allow_multiple_same_topping:
            return False
        if not can_select_topping(self.menu_item, category_id, topping_id, self.toppings):
            return False
        entry = self._topping_entry(category_id)
        if topping_id not in entry.topping_ids:
            entry.topping_ids.append(topping_id)
        if category.allow_multiple_same_topping:
            entry.topping_quantities[topping_id] = quantity
        self._settle()
        return True

    def visible_categories(self) -> List[ToppingCategory]:
        return visible_categories(self.menu_item, self.options, self.toppings)

    def categories_below_minimum(self) -> List[str]:
        return below_minimum(self.menu_item, self.options, self.toppings)

    def validate(self, at: Optional[time] = None, quantity: int = 1) -> ValidationResult:
        return validate_selection(self.menu_item, self.options, self.toppings, at=at, quantity=quantity)

    def price(self) -> Decimal:
        return compute_item_price(self.menu_item, self.options, self.toppings)

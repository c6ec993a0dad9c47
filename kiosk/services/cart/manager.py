"""Cart state, pricing and write-through persistence."""
import logging
import uuid
from datetime import time
from decimal import Decimal
from typing import List, Optional, Sequence

from pydantic import BaseModel, ValidationError

from kiosk.core.errors import CartItemNotFound, InputValidationError, SelectionRejected
from kiosk.services.cart.storage import KeyValueStore
from kiosk.services.catalog.models import MenuItem, Restaurant
from kiosk.services.ordering.models import SelectedOption, SelectedToppingCategory, Violation
from kiosk.services.ordering.pricing import Totals, compute_item_price, compute_totals, line_total
from kiosk.services.ordering.selection import SelectionState
from kiosk.services.ordering.validator import topping_quantity_violations, validate_selection
from kiosk.services.security.validation import validate_special_instructions

logger = logging.getLogger(__name__)

CART_KEY_PREFIX = "kiosk_cart_"


def cart_key(restaurant_id: str) -> str:
    """Storage key of a restaurant's cart."""
    return f"{CART_KEY_PREFIX}{restaurant_id}"


class CartItem(BaseModel):
    """A customized menu item in the cart.

    ``menu_item`` is a snapshot taken when the item was added, so later
    recomputes use the same prices the customer saw.
    """

    id: str
    menu_item: MenuItem
    quantity: int
    selected_options: List[SelectedOption] = []
    selected_toppings: List[SelectedToppingCategory] = []
    special_instructions: Optional[str] = None
    item_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return line_total(self.item_price, self.quantity)


class AddItemResult(BaseModel):
    """Outcome of ``CartManager.add_item``."""

    added: bool
    item: Optional[CartItem] = None
    violations: List[Violation] = []


class CartManager:
    """Ordered cart of one restaurant, persisted on every mutation."""

    def __init__(self, restaurant_id: str, store: KeyValueStore):
        self.restaurant_id = restaurant_id
        self.store = store
        self.key = cart_key(restaurant_id)
        self.items: List[CartItem] = self._load()

    def _load(self) -> List[CartItem]:
        raw = self.store.get(self.key)
        if not raw:
            return []
        try:
            items = [CartItem.model_validate(entry) for entry in raw]
        except (ValidationError, TypeError) as e:
            logger.warning(
                f"[CART] Discarding unreadable cart for restaurant {self.restaurant_id} - "
                f"{type(e).__name__}: {str(e)}"
            )
            return []
        logger.debug(f"[CART] Restored {len(items)} items for restaurant {self.restaurant_id}")
        return items

    def _persist(self) -> None:
        self.store.set(self.key, [item.model_dump(mode="json") for item in self.items])

    def get_item(self, item_id: str) -> CartItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise CartItemNotFound(item_id)

    def add_item(
        self,
        menu_item: MenuItem,
        quantity: int = 1,
        selected_options: Optional[Sequence[SelectedOption]] = None,
        selected_toppings: Optional[Sequence[SelectedToppingCategory]] = None,
        special_instructions: Optional[str] = None,
        at: Optional[time] = None,
        enforce: bool = True,
    ) -> AddItemResult:
        """Validate, price and append an item.

        With ``enforce`` set, an invalid selection is not added and the
        result carries the violations. Otherwise the item is added and the
        violations are still reported.
        """
        state = SelectionState(menu_item, selected_options, selected_toppings)
        result = validate_selection(menu_item, state.options, state.toppings, at=at, quantity=quantity)
        violations = topping_quantity_violations(selected_toppings or []) + result.violations

        instructions = None
        try:
            instructions = validate_special_instructions(special_instructions)
        except InputValidationError as e:
            violations.append(
                Violation(
                    code="special_instructions_invalid",
                    target_id="special_instructions",
                    message=e.message,
                    details={"reason": getattr(e, "code", "invalid")},
                )
            )

        if violations and (enforce or quantity < 1):
            logger.info(
                f"[CART] Rejected {menu_item.id}: {', '.join(v.code for v in violations)}"
            )
            return AddItemResult(added=False, violations=violations)

        item = CartItem(
            id=uuid.uuid4().hex,
            menu_item=menu_item,
            quantity=quantity,
            selected_options=state.options,
            selected_toppings=state.toppings,
            special_instructions=instructions,
            item_price=state.price(),
        )
        self.items.append(item)
        self._persist()
        logger.info(
            f"[CART] Added {quantity}x {menu_item.name} at {item.item_price} "
            f"(restaurant {self.restaurant_id}, {len(self.items)} lines)"
        )
        return AddItemResult(added=True, item=item, violations=violations)

    def update_quantity(self, item_id: str, quantity: int) -> Optional[CartItem]:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(item_id)
            return None
        item = self.get_item(item_id)
        item.quantity = quantity
        self._persist()
        return item

    def update_topping_quantity(
        self, item_id: str, category_id: str, topping_id: str, quantity: int
    ) -> CartItem:
        """Change one topping's quantity and reprice the line.

        Zero or less removes the topping from the category. Raises
        ``SelectionRejected`` when the change breaks the category rules.
        """
        item = self.get_item(item_id)
        state = SelectionState(item.menu_item, item.selected_options, item.selected_toppings)

        if quantity <= 0:
            state.set_topping_quantity(category_id, topping_id, 0)
        elif not state.set_topping_quantity(category_id, topping_id, quantity):
            raise SelectionRejected(
                [self._topping_rejection(item.menu_item, state, category_id, topping_id, quantity)]
            )

        item.selected_options = state.options
        item.selected_toppings = state.toppings
        item.item_price = compute_item_price(item.menu_item, item.selected_options, item.selected_toppings)
        self._persist()
        logger.info(
            f"[CART] Topping {topping_id} set to {max(quantity, 0)} on line {item_id}, "
            f"unit price now {item.item_price}"
        )
        return item

    @staticmethod
    def _topping_rejection(
        menu_item: MenuItem, state: SelectionState, category_id: str, topping_id: str, quantity: int
    ) -> Violation:
        category = menu_item.find_category(category_id)
        topping = category.find_topping(topping_id) if category else None
        if category is None or topping is None:
            return Violation(
                code="unknown_topping",
                target_id=topping_id,
                message=f"Topping {topping_id} is not offered in category {category_id}",
            )
        if category.id not in {c.id for c in state.visible_categories()}:
            return Violation(
                code="category_hidden",
                target_id=category_id,
                message=f"{category.name} is not available for the current selection",
            )
        if not topping.in_stock:
            return Violation(code="topping_out_of_stock", target_id=topping_id, message=f"{topping.name} is out of stock")
        if quantity > 1 and not category.allow_multiple_same_topping:
            return Violation(
                code="topping_quantity_not_allowed",
                target_id=topping_id,
                message=f"{category.name} does not allow the same topping more than once",
            )
        return Violation(
            code="category_max",
            target_id=category_id,
            message=f"Select at most {category.max_selections} in {category.name}",
            details={"maximum": category.max_selections},
        )

    def remove_topping_from_item(self, item_id: str, category_id: str, topping_id: str) -> CartItem:
        return self.update_topping_quantity(item_id, category_id, topping_id, 0)

    def remove_item(self, item_id: str) -> None:
        item = self.get_item(item_id)
        self.items.remove(item)
        self._persist()
        logger.info(f"[CART] Removed line {item_id} ({len(self.items)} lines left)")

    def clear_cart(self) -> None:
        self.items = []
        self._persist()
        logger.info(f"[CART] Cleared cart for restaurant {self.restaurant_id}")

    def cart_totals(self, restaurant: Restaurant) -> Totals:
        """Subtotal, tax and total at the restaurant's tax rate."""
        return compute_totals(((item.item_price, item.quantity) for item in self.items), restaurant.tax_rate)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

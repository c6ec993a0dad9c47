"""Selection constraint validation."""
from datetime import time
from typing import List, Optional, Sequence

from kiosk.services.catalog.models import MenuItem
from kiosk.services.ordering.models import (
    SelectedOption,
    SelectedToppingCategory,
    ValidationResult,
    Violation,
)
from kiosk.services.ordering.visibility import is_category_visible


def _selection_for(category_id: str, selected_toppings: Sequence[SelectedToppingCategory]):
    return next((s for s in selected_toppings if s.category_id == category_id), None)


def can_select_topping(
    menu_item: MenuItem,
    category_id: str,
    topping_id: str,
    selected_toppings: Sequence[SelectedToppingCategory],
) -> bool:
    """Whether adding ``topping_id`` keeps the category within its maximum.

    Already-selected toppings can always be toggled off.
    """
    category = menu_item.find_category(category_id)
    if category is None:
        return False
    selection = _selection_for(category_id, selected_toppings)
    current = selection.topping_ids if selection else []
    if topping_id in current:
        return True
    return not (category.max_selections and len(current) >= category.max_selections)


def topping_quantity_violations(selected_toppings: Sequence[SelectedToppingCategory]) -> List[Violation]:
    """Selected toppings whose quantity is below 1."""
    violations = []
    for selection in selected_toppings:
        for topping_id in dict.fromkeys(selection.topping_ids):
            quantity = selection.topping_quantities.get(topping_id, 1)
            if quantity < 1:
                violations.append(
                    Violation(
                        code="invalid_topping_quantity",
                        target_id=topping_id,
                        message="Topping quantity must be at least 1",
                        details={"category_id": selection.category_id, "quantity": quantity},
                    )
                )
    return violations


def validate_selection(
    menu_item: MenuItem,
    selected_options: Sequence[SelectedOption],
    selected_toppings: Sequence[SelectedToppingCategory],
    at: Optional[time] = None,
    quantity: int = 1,
) -> ValidationResult:
    """Check a selection against the item's option and topping rules.

    Hidden conditional categories are skipped. When ``at`` is given the
    item's availability window is enforced as well.
    """
    violations: List[Violation] = []

    if not menu_item.in_stock:
        violations.append(
            Violation(code="item_out_of_stock", target_id=menu_item.id, message=f"{menu_item.name} is out of stock")
        )
    if at is not None and not menu_item.is_available_at(at):
        violations.append(
            Violation(
                code="item_unavailable",
                target_id=menu_item.id,
                message=f"{menu_item.name} is only available "
                f"from {menu_item.available_from} until {menu_item.available_until}",
            )
        )
    if quantity < 1:
        violations.append(
            Violation(code="invalid_quantity", target_id=menu_item.id, message="Quantity must be at least 1")
        )
    violations.extend(topping_quantity_violations(selected_toppings))

    for option in menu_item.options:
        selection = next((s for s in selected_options if s.option_id == option.id), None)
        chosen = [c for c in (selection.choice_ids if selection else []) if option.find_choice(c)]
        if option.required and not chosen:
            violations.append(
                Violation(code="option_required", target_id=option.id, message=f"Please choose a {option.name}")
            )
        if not option.multiple and len(chosen) > 1:
            violations.append(
                Violation(
                    code="option_single_choice",
                    target_id=option.id,
                    message=f"Only one choice allowed for {option.name}",
                    details={"selected": len(chosen)},
                )
            )

    for category in menu_item.topping_categories:
        if not is_category_visible(menu_item, category, selected_options, selected_toppings):
            continue
        selection = _selection_for(category.id, selected_toppings)
        topping_ids = list(dict.fromkeys(selection.topping_ids)) if selection else []
        count = len(topping_ids)
        if category.min_selections and count < category.min_selections:
            violations.append(
                Violation(
                    code="category_min",
                    target_id=category.id,
                    message=f"Select at least {category.min_selections} in {category.name}",
                    details={"minimum": category.min_selections, "selected": count},
                )
            )
        if category.max_selections and count > category.max_selections:
            violations.append(
                Violation(
                    code="category_max",
                    target_id=category.id,
                    message=f"Select at most {category.max_selections} in {category.name}",
                    details={"maximum": category.max_selections, "selected": count},
                )
            )
        for topping_id in topping_ids:
            topping = category.find_topping(topping_id)
            if topping is not None and not topping.in_stock:
                violations.append(
                    Violation(
                        code="topping_out_of_stock",
                        target_id=topping_id,
                        message=f"{topping.name} is out of stock",
                    )
                )
            if not category.allow_multiple_same_topping and selection.topping_quantities.get(topping_id, 1) > 1:
                violations.append(
                    Violation(
                        code="topping_quantity_not_allowed",
                        target_id=topping_id,
                        message=f"{category.name} does not allow the same topping more than once",
                    )
                )

    return ValidationResult(valid=not violations, violations=violations)


def below_minimum(
    menu_item: MenuItem,
    selected_options: Sequence[SelectedOption],
    selected_toppings: Sequence[SelectedToppingCategory],
) -> List[str]:
    """Ids of visible categories still short of their minimum.

    Used for the progressive "required" markers shown during customization.
    """
    missing = []
    for category in menu_item.topping_categories:
        if not category.min_selections:
            continue
        if not is_category_visible(menu_item, category, selected_options, selected_toppings):
            continue
        selection = _selection_for(category.id, selected_toppings)
        if len(set(selection.topping_ids) if selection else ()) < category.min_selections:
            missing.append(category.id)
    return missing

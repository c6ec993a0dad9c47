"""Conditional visibility of topping categories."""
import logging
from typing import List, Sequence

from kiosk.services.catalog.models import MenuItem, ToppingCategory
from kiosk.services.ordering.models import SelectedOption, SelectedToppingCategory

logger = logging.getLogger(__name__)


def _option_rule_matches(menu_item: MenuItem, target_id: str, selected_options: Sequence[SelectedOption]) -> bool:
    # A rule may name either a choice or a whole option
    for selection in selected_options:
        if target_id in selection.choice_ids:
            return True
        if selection.option_id == target_id and selection.choice_ids:
            return menu_item.find_option(target_id) is not None
    return False


def _topping_rule_matches(target_id: str, selected_toppings: Sequence[SelectedToppingCategory]) -> bool:
    return any(target_id in selection.topping_ids for selection in selected_toppings)


def is_category_visible(
    menu_item: MenuItem,
    category: ToppingCategory,
    selected_options: Sequence[SelectedOption],
    selected_toppings: Sequence[SelectedToppingCategory],
) -> bool:
    """Whether a category is shown for the current selections.

    Unconditional categories are always shown. A conditional category is
    shown when any of its ``show_if_selection_*`` rules matches.
    """
    if not category.is_conditional:
        return True
    for selection_type, target_id in zip(category.show_if_selection_type, category.show_if_selection_id):
        if selection_type == "option" and _option_rule_matches(menu_item, target_id, selected_options):
            return True
        if selection_type == "topping":
            others = [s for s in selected_toppings if s.category_id != category.id]
            if _topping_rule_matches(target_id, others):
                return True
    return False


def visible_categories(
    menu_item: MenuItem,
    selected_options: Sequence[SelectedOption],
    selected_toppings: Sequence[SelectedToppingCategory],
) -> List[ToppingCategory]:
    return [
        c
        for c in menu_item.topping_categories
        if is_category_visible(menu_item, c, selected_options, selected_toppings)
    ]


def prune_hidden_selections(
    menu_item: MenuItem,
    selected_options: Sequence[SelectedOption],
    selected_toppings: Sequence[SelectedToppingCategory],
) -> List[SelectedToppingCategory]:
    """Drop selections made in categories that are no longer visible.

    Repeats until nothing changes, since clearing one category can hide
    another one that depended on it.
    """
    remaining = list(selected_toppings)
    while True:
        kept = []
        for selection in remaining:
            category = menu_item.find_category(selection.category_id)
            if category is not None and not is_category_visible(menu_item, category, selected_options, remaining):
                logger.info(f"[SELECTION] Clearing hidden category {category.id} on item {menu_item.id}")
                continue
            kept.append(selection)
        if len(kept) == len(remaining):
            return kept
        remaining = kept

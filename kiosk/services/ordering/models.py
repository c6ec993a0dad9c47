"""Selection models for one customized menu item."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class SelectedOption(BaseModel):
    """Choices picked for one option."""

    option_id: str
    choice_ids: List[str] = []


class SelectedToppingCategory(BaseModel):
    """Toppings picked in one topping category.

    When the category allows the same topping several times,
    ``topping_ids`` is exactly the set of keys of ``topping_quantities``
    with a positive quantity; otherwise every listed topping counts once.
    """

    category_id: str
    topping_ids: List[str] = []
    topping_quantities: Dict[str, int] = {}

    def quantity_of(self, topping_id: str) -> int:
        if topping_id not in self.topping_ids:
            return 0
        return max(self.topping_quantities.get(topping_id, 1), 0)


class Violation(BaseModel):
    """One broken selection rule."""

    code: str
    message: str
    target_id: Optional[str] = None
    details: Dict[str, Any] = {}


class ValidationResult(BaseModel):
    """Outcome of validating a selection."""

    valid: bool
    violations: List[Violation] = []

"""Error types shared across the kiosk services."""
from typing import Any, Dict, List, Optional


class KioskError(Exception):
    """Base class for kiosk errors."""


class SelectionRejected(KioskError):
    """A selection failed its constraints.

    Carries the violations so callers can render per-field messages.
    """

    def __init__(self, violations: List[Any]):
        self.violations = list(violations)
        codes = ", ".join(v.code for v in self.violations)
        super().__init__(f"Selection rejected: {codes}")


class CartItemNotFound(KioskError):
    """No cart item with the given id."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Cart item {item_id} not found")


class InputValidationError(KioskError):
    """User input failed a format or length rule."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}" if field else message)


class SecurityViolation(InputValidationError):
    """User input matched a malicious-content pattern."""

    def __init__(self, message: str, code: str, field: Optional[str] = None):
        self.code = code
        super().__init__(message, field=field)


class BackendError(KioskError):
    """A query or RPC against the persistence backend failed."""

    def __init__(self, operation: str, target: str, message: str):
        self.operation = operation
        self.target = target
        self.message = message
        super().__init__(f"{operation} {target} failed: {message}")


class AuthorizationError(BackendError):
    """The backend refused the call for lack of permission or session."""


class PrintTransportError(KioskError):
    """A print job could not be delivered to one printer."""

    def __init__(self, printer_id: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.printer_id = printer_id
        self.message = message
        self.details = details or {}
        super().__init__(f"Printer {printer_id}: {message}")

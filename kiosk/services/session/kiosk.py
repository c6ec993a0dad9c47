"""Per-restaurant kiosk screen state."""
import logging
from typing import Optional

from pydantic import BaseModel

from kiosk.services.cart.manager import CartManager
from kiosk.services.cart.storage import KeyValueStore
from kiosk.services.session.loader import Fetch, ItemDetailLoader
from kiosk.services.session.timers import InactivityMonitor

logger = logging.getLogger(__name__)


class SessionStatus(BaseModel):
    active: bool
    dialog_visible: bool
    current_item_id: Optional[str] = None
    resets: int = 0


class KioskSession:
    """Idle handling and the open item dialog of one restaurant's kiosk.

    When the inactivity dialog goes unanswered the cart is emptied and the
    item dialog closed, so the next customer starts from the menu.
    """

    def __init__(
        self,
        restaurant_id: str,
        store: KeyValueStore,
        fetch: Optional[Fetch] = None,
        timeout: Optional[float] = None,
        dialog_seconds: Optional[float] = None,
    ):
        self.restaurant_id = restaurant_id
        self.store = store
        self.loader = ItemDetailLoader(fetch)
        self.monitor = InactivityMonitor(
            self._show_dialog, self._reset, timeout=timeout, dialog_seconds=dialog_seconds
        )
        self.resets = 0

    def _show_dialog(self) -> None:
        logger.info(f"[SESSION] Asking restaurant {self.restaurant_id} kiosk whether the customer is still there")

    def _reset(self) -> None:
        self.loader.close()
        CartManager(self.restaurant_id, self.store).clear_cart()
        self.resets += 1
        logger.info(f"[SESSION] Kiosk session reset for restaurant {self.restaurant_id}")

    def touch(self) -> None:
        """Customer activity: start monitoring, or push the idle deadline back."""
        if self.monitor.active:
            self.monitor.record_activity()
        else:
            self.monitor.start()

    def continue_session(self) -> None:
        self.monitor.continue_session()

    def end(self) -> None:
        """Order placed or kiosk shutting down."""
        self.monitor.cancel()
        self.loader.close()

    def status(self) -> SessionStatus:
        return SessionStatus(
            active=self.monitor.active,
            dialog_visible=self.monitor.dialog_visible,
            current_item_id=self.loader.item_id,
            resets=self.resets,
        )

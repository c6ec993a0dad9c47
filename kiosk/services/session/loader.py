"""Guards against late responses overwriting newer state."""
import logging
from typing import Awaitable, Callable, NamedTuple, Optional

from kiosk.services.catalog.models import MenuItem

logger = logging.getLogger(__name__)

Fetch = Callable[[str], Awaitable[Optional[MenuItem]]]


class RequestGeneration:
    """Monotonic token; only the most recently issued one is current."""

    def __init__(self):
        self._value = 0

    def next(self) -> int:
        self._value += 1
        return self._value

    def invalidate(self) -> None:
        self._value += 1

    def is_current(self, token: int) -> bool:
        return token == self._value


class DetailResult(NamedTuple):
    item: Optional[MenuItem]
    stale: bool = False


class ItemDetailLoader:
    """Loads the detail of the item being customized.

    Opening another item or closing the dialog supersedes any fetch still in
    flight; its result is dropped when it arrives.
    """

    def __init__(self, fetch: Optional[Fetch] = None):
        self.fetch = fetch
        self.generation = RequestGeneration()
        self.current: Optional[MenuItem] = None
        self.item_id: Optional[str] = None

    async def load(self, item_id: str, fetch: Optional[Fetch] = None) -> DetailResult:
        """Fetch ``item_id``; ``stale`` is set when a newer open or a close came first."""
        token = self.generation.next()
        self.current = None
        self.item_id = item_id
        item = await (fetch or self.fetch)(item_id)
        if not self.generation.is_current(token):
            logger.debug(f"[SESSION] Dropping stale detail for {item_id}")
            return DetailResult(None, stale=True)
        self.current = item
        return DetailResult(item)

    async def open(self, item_id: str, fetch: Optional[Fetch] = None) -> Optional[MenuItem]:
        return (await self.load(item_id, fetch)).item

    def close(self) -> None:
        self.generation.invalidate()
        self.current = None
        self.item_id = None

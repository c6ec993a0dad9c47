"""Two-tier read-through cache in front of the menu repository."""
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import quote

from pydantic import ValidationError

from kiosk.core.config import settings
from kiosk.services.cache.memory import MemoryCache
from kiosk.services.cart.storage import KeyValueStore
from kiosk.services.catalog.models import MenuCategory, MenuItem
from kiosk.services.menu.repository import BatchItemResult, MenuRepository

logger = logging.getLogger(__name__)

CACHE_PREFIX = "kiosk_cache_"


def cache_key_prefix(restaurant_id: str) -> str:
    """Storage key prefix of one restaurant's cached entries.

    The id is percent-encoded so the trailing ":" can never occur inside it.
    """
    return f"{CACHE_PREFIX}{quote(restaurant_id, safe='')}:"


class MenuDetailCache:
    """Menu and item-detail cache for one restaurant.

    Reads go memory first, then the persistent store if its entry is still
    fresh, then the repository. Fetched data fills both tiers. Failed
    lookups are never cached. Create one per restaurant and call
    ``clear()`` on logout or tenant switch.
    """

    def __init__(
        self,
        restaurant_id: str,
        repository: MenuRepository,
        store: KeyValueStore,
        memory: Optional[MemoryCache] = None,
        storage_ttl_seconds: Optional[float] = None,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.restaurant_id = restaurant_id
        self.repository = repository
        self.store = store
        self.memory = memory or MemoryCache(settings.menu_cache_max_size, settings.menu_cache_ttl_seconds)
        self.storage_ttl_seconds = (
            settings.storage_cache_ttl_seconds if storage_ttl_seconds is None else storage_ttl_seconds
        )
        self.wall_clock = wall_clock

    def _storage_key(self, name: str) -> str:
        return f"{cache_key_prefix(self.restaurant_id)}{name}"

    def _read_storage(self, name: str):
        key = self._storage_key(name)
        entry = self.store.get(key)
        if not isinstance(entry, dict) or "timestamp" not in entry:
            return None
        if self.wall_clock() - float(entry["timestamp"]) > self.storage_ttl_seconds:
            logger.debug(f"[CACHE] Stale storage entry {key}")
            self.store.remove(key)
            return None
        return entry.get("data")

    def _write_storage(self, name: str, data) -> None:
        self.store.set(self._storage_key(name), {"data": data, "timestamp": self.wall_clock()})

    async def get_items(self, item_ids: Iterable[str]) -> Dict[str, BatchItemResult]:
        """Detail for several items; each id resolves independently."""
        ids = list(dict.fromkeys(item_ids))
        results: Dict[str, BatchItemResult] = {}
        pending: List[str] = []

        for item_id in ids:
            name = f"item_{item_id}"
            item = self.memory.get((self.restaurant_id, name))
            if item is not None:
                results[item_id] = BatchItemResult(success=True, item=item)
                continue
            data = self._read_storage(name)
            if data is not None:
                try:
                    item = MenuItem.model_validate(data)
                except ValidationError as e:
                    logger.warning(f"[CACHE] Dropping unreadable entry for {item_id}: {e}")
                    self.store.remove(self._storage_key(name))
                else:
                    self.memory.set((self.restaurant_id, name), item)
                    results[item_id] = BatchItemResult(success=True, item=item)
                    continue
            pending.append(item_id)

        if pending:
            logger.info(f"[CACHE] {len(ids) - len(pending)} cached, fetching {len(pending)} items")
            fetched = await self.repository.get_items_with_options(pending)
            for item_id in pending:
                result = fetched.get(item_id) or BatchItemResult(success=False, error="Item not found")
                if result.success and result.item is not None:
                    name = f"item_{item_id}"
                    self.memory.set((self.restaurant_id, name), result.item)
                    self._write_storage(name, result.item.model_dump(mode="json"))
                results[item_id] = result
        return {item_id: results[item_id] for item_id in ids}

    async def get_item(self, item_id: str) -> Optional[MenuItem]:
        result = (await self.get_items([item_id]))[item_id]
        return result.item if result.success else None

    async def get_menu(self) -> List[MenuCategory]:
        """Menu grid for the restaurant."""
        cached = self.memory.get((self.restaurant_id, "menu"))
        if cached is not None:
            return cached
        data = self._read_storage("menu")
        if data is not None:
            try:
                menu = [MenuCategory.model_validate(c) for c in data]
            except ValidationError as e:
                logger.warning(f"[CACHE] Dropping unreadable menu entry: {e}")
            else:
                self.memory.set((self.restaurant_id, "menu"), menu)
                return menu
        menu = await self.repository.get_menu(self.restaurant_id)
        self.memory.set((self.restaurant_id, "menu"), menu)
        self._write_storage("menu", [c.model_dump(mode="json") for c in menu])
        return menu

    def clear(self) -> int:
        """Drop both tiers for this restaurant and return how many stored entries were removed."""
        self.memory.clear()
        keys = self.store.keys(cache_key_prefix(self.restaurant_id))
        for key in keys:
            self.store.remove(key)
        logger.info(f"[CACHE] Cleared cache for restaurant {self.restaurant_id} ({len(keys)} stored entries)")
        return len(keys)

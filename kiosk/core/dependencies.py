"""FastAPI dependencies."""
import logging
from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request

from kiosk.core.config import settings
from kiosk.db.database import AsyncSessionLocal
from kiosk.services.backend.base import Backend
from kiosk.services.backend.memory import InMemoryBackend
from kiosk.services.backend.sql import SqlBackend
from kiosk.services.cache.menu_cache import MenuDetailCache
from kiosk.services.cache.prefetch import ImagePrefetcher
from kiosk.services.cart.manager import CartManager
from kiosk.services.cart.storage import JsonFileStore, KeyValueStore
from kiosk.services.menu.repository import MenuRepository
from kiosk.services.persistence.orders import OrderPersistenceService
from kiosk.services.security.audit import AuditLogger
from kiosk.services.security.rate_limit import RateLimiter, check_api_rate_limit
from kiosk.services.security.secrets import SecretStore
from kiosk.services.session.kiosk import KioskSession

logger = logging.getLogger(__name__)

_backend: Optional[Backend] = None
_store: Optional[KeyValueStore] = None
_menu_caches: Dict[str, MenuDetailCache] = {}
_kiosk_sessions: Dict[str, KioskSession] = {}
_prefetcher: Optional[ImagePrefetcher] = None
rate_limiter = RateLimiter()


def get_backend() -> Backend:
    """Get the persistence backend selected by ``settings.backend``."""
    global _backend
    if _backend is None:
        if settings.backend == "memory":
            logger.info(f"Using in-memory backend loaded from {settings.catalog_path}")
            _backend = InMemoryBackend.from_yaml(settings.catalog_path)
        else:
            _backend = SqlBackend(AsyncSessionLocal)
    return _backend


def get_store() -> KeyValueStore:
    """Get the tenant-scoped key/value store."""
    global _store
    if _store is None:
        _store = JsonFileStore(settings.storage_dir)
    return _store


def get_rate_limiter() -> RateLimiter:
    return rate_limiter


def get_menu_repository(backend: Backend = Depends(get_backend)) -> MenuRepository:
    """Get menu repository instance."""
    return MenuRepository(backend)


def get_menu_cache(
    restaurant_id: str,
    repository: MenuRepository = Depends(get_menu_repository),
    store: KeyValueStore = Depends(get_store),
) -> MenuDetailCache:
    """One cache per restaurant for the lifetime of the application."""
    cache = _menu_caches.get(restaurant_id)
    if cache is None:
        cache = MenuDetailCache(restaurant_id, repository, store)
        _menu_caches[restaurant_id] = cache
    return cache


def drop_menu_caches() -> None:
    """Tear down every restaurant cache (logout, tenant switch, shutdown)."""
    for cache in _menu_caches.values():
        cache.clear()
    _menu_caches.clear()


def invalidate_menu_cache(restaurant_id: str, repository: MenuRepository, store: KeyValueStore) -> int:
    """Forget one restaurant's cached menu after its catalog changed.

    Stored entries are removed even when no cache is live in this process.
    """
    cache = _menu_caches.pop(restaurant_id, None)
    if cache is None:
        cache = MenuDetailCache(restaurant_id, repository, store)
    return cache.clear()


def get_kiosk_session(restaurant_id: str, store: KeyValueStore = Depends(get_store)) -> KioskSession:
    """One kiosk session per restaurant for the lifetime of the application."""
    session = _kiosk_sessions.get(restaurant_id)
    if session is None:
        session = KioskSession(restaurant_id, store)
        _kiosk_sessions[restaurant_id] = session
    return session


def end_kiosk_sessions() -> None:
    for session in _kiosk_sessions.values():
        session.end()
    _kiosk_sessions.clear()


def get_prefetcher() -> ImagePrefetcher:
    global _prefetcher
    if _prefetcher is None:
        _prefetcher = ImagePrefetcher()
    return _prefetcher


def get_cart_manager(restaurant_id: str, store: KeyValueStore = Depends(get_store)) -> CartManager:
    """Cart of one restaurant, hydrated from storage."""
    return CartManager(restaurant_id, store)


def get_secret_store(backend: Backend = Depends(get_backend)) -> SecretStore:
    return SecretStore(backend)


def get_audit_logger(backend: Backend = Depends(get_backend)) -> AuditLogger:
    return AuditLogger(backend)


def get_order_service(backend: Backend = Depends(get_backend)) -> OrderPersistenceService:
    return OrderPersistenceService(backend)


async def api_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    """Reject clients over the API request limit."""
    client = request.client.host if request.client else "unknown"
    decision = check_api_rate_limit(limiter, client)
    if not decision.allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many requests",
            headers={"Retry-After": str(decision.retry_after)},
        )

"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kiosk.api import admin, auth, cart, health, menu, orders, session
from kiosk.core.config import settings
from kiosk.core.dependencies import drop_menu_caches, end_kiosk_sessions, get_prefetcher
from kiosk.core.logging import setup_logging
from kiosk.db.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    if settings.backend == "sql":
        await init_db()
    yield
    # Shutdown
    end_kiosk_sessions()
    await get_prefetcher().stop()
    drop_menu_caches()
    logger.info("Kiosk API stopped")


app = FastAPI(
    title="Restaurant Kiosk API",
    description="Self-service ordering kiosk for restaurants",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(menu.router, tags=["menu"])
app.include_router(cart.router, tags=["cart"])
app.include_router(session.router, tags=["session"])
app.include_router(orders.router, tags=["orders"])
app.include_router(auth.router, tags=["auth"])
app.include_router(admin.router, tags=["admin"])


@app.get("/")
async def root():
    return {"message": "Restaurant Kiosk API", "version": "0.1.0"}

"""Application configuration."""
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./kiosk.db"

    # Persistence backend: "sql" (database_url) or "memory" (tables loaded from catalog_path)
    backend: Literal["sql", "memory"] = "sql"
    catalog_path: str = "data/catalog.yaml"

    # Tenant-scoped key/value storage (cart, menu cache)
    storage_dir: str = "data/storage"

    # Restaurant defaults
    default_currency: str = "EUR"
    default_language: str = "fr"
    default_tax_rate: float = 10.0  # percent

    # Receipts
    receipt_width: int = 48

    # Menu detail cache
    menu_cache_max_size: int = 100
    menu_cache_ttl_seconds: int = 300
    storage_cache_ttl_seconds: int = 24 * 60 * 60
    prefetch_delay_seconds: float = 0.1

    # Kiosk session
    inactivity_timeout_seconds: int = 60
    inactivity_dialog_seconds: int = 10

    # Admin dashboard
    dashboard_password: str = "change-me"
    session_ttl_hours: int = 24

    # Rate limiting
    login_max_attempts: int = 5
    login_window_seconds: int = 15 * 60
    login_block_seconds: int = 15 * 60
    api_max_requests: int = 100
    api_window_seconds: int = 60
    api_block_seconds: int = 5 * 60

    # Print transports
    printnode_api_url: str = "https://api.printnode.com"
    qz_tray_url: str = "wss://localhost:8181"
    print_timeout_seconds: float = 15.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()

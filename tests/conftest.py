"""Shared test fixtures and configuration."""
import os
from pathlib import Path

import pytest
import yaml
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DASHBOARD_PASSWORD", "testpass123")

from kiosk.main import app
from kiosk.core.dependencies import _kiosk_sessions, drop_menu_caches, get_backend, get_rate_limiter, get_store
from kiosk.db.models import Base
from kiosk.services.backend.memory import InMemoryBackend
from kiosk.services.backend.sql import SqlBackend
from kiosk.services.cart.storage import InMemoryStore
from kiosk.services.menu.repository import MenuRepository
from kiosk.services.security.rate_limit import RateLimiter

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpass123"


@pytest.fixture
def catalog_path():
    """Return path to the test catalog YAML file."""
    return Path(__file__).parent / "fixtures" / "test_catalog.yaml"


@pytest.fixture
def catalog_tables(catalog_path):
    with open(catalog_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)["tables"]


@pytest.fixture
def api_keys():
    """Plaintext keys held by the fake key RPCs, keyed by (restaurant, service, key name)."""
    return {}


@pytest.fixture
def memory_backend(catalog_path, api_keys):
    """In-memory backend with the test catalog and fake key RPCs."""
    backend = InMemoryBackend.from_yaml(catalog_path)

    async def store_key(args):
        api_keys[(args["p_restaurant_id"], args["p_service_name"], args["p_key_name"])] = args["p_key_value"]
        return True

    async def get_key(args):
        return api_keys.get((args["p_restaurant_id"], args["p_service_name"], args["p_key_name"]))

    async def rotate_key(args):
        api_keys[(args["p_restaurant_id"], args["p_service_name"], args["p_key_name"])] = args["p_new_key_value"]
        return True

    backend.register_rpc("store_encrypted_api_key", store_key)
    backend.register_rpc("get_encrypted_api_key", get_key)
    backend.register_rpc("rotate_encrypted_api_key", rotate_key)
    return backend


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def sql_backend(test_db_engine, catalog_tables):
    """SQL backend over a fresh in-memory database loaded with the test catalog."""
    session_factory = async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)
    backend = SqlBackend(session_factory)
    for table in Base.metadata.sorted_tables:
        for row in catalog_tables.get(table.name) or []:
            await backend.insert(table.name, row)
    return backend


@pytest.fixture
def repository(memory_backend):
    return MenuRepository(memory_backend)


@pytest.fixture
async def burger(repository):
    """The fully assembled burger: size option, extras, and two conditional categories."""
    return await repository.get_item_with_options("burger")


@pytest.fixture
async def salad(repository):
    return await repository.get_item_with_options("salad")


@pytest.fixture
async def restaurant(repository):
    return await repository.get_restaurant("bistro")


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clean_auth_sessions():
    """Clean up authentication sessions before and after tests."""
    from kiosk.api import auth
    auth._sessions.clear()
    yield
    auth._sessions.clear()


@pytest.fixture
def test_client(memory_backend, store, clean_auth_sessions):
    """Create FastAPI test client with overrides."""
    limiter = RateLimiter()
    app.dependency_overrides[get_backend] = lambda: memory_backend
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    drop_menu_caches()
    _kiosk_sessions.clear()

    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()
    drop_menu_caches()
    _kiosk_sessions.clear()


@pytest.fixture
def authenticated_client(test_client):
    """Create test client with valid session cookie."""
    response = test_client.post("/api/auth/login", json={"password": TEST_PASSWORD})
    assert response.status_code == 200

    # Session cookie is automatically stored in test_client
    return test_client

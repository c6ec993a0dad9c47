"""Unit tests for kiosk session endpoints and backend selection."""
import kiosk.core.dependencies as dependencies
from kiosk.core.config import settings
from kiosk.services.backend.memory import InMemoryBackend


class TestItemDetailAPI:
    """Test opening an item for customization."""

    def test_open_item(self, test_client):
        """The detail is returned and the dialog recorded on the session."""
        response = test_client.get("/api/restaurants/bistro/menu/items/burger")

        assert response.status_code == 200
        assert response.json()["id"] == "burger"
        assert response.json()["options"][0]["id"] == "size"
        status = test_client.get("/api/restaurants/bistro/session").json()
        assert status["current_item_id"] == "burger"

    def test_unknown_item(self, test_client):
        response = test_client.get("/api/restaurants/bistro/menu/items/nope")

        assert response.status_code == 404
        assert response.json()["detail"] == "Item not found"

    def test_close_item(self, test_client):
        test_client.get("/api/restaurants/bistro/menu/items/burger")

        response = test_client.delete("/api/restaurants/bistro/session/item")

        assert response.status_code == 200
        assert response.json()["current_item_id"] is None

    def test_sessions_per_restaurant(self, test_client):
        test_client.get("/api/restaurants/bistro/menu/items/burger")

        assert test_client.get("/api/restaurants/diner/session").json()["current_item_id"] is None


class TestSessionAPI:
    """Test activity and inactivity dialog endpoints."""

    def test_activity_starts_monitoring(self, test_client):
        response = test_client.post("/api/restaurants/bistro/session/activity")

        assert response.status_code == 200
        data = response.json()
        assert data["active"] is True
        assert data["dialog_visible"] is False
        assert data["resets"] == 0

    def test_continue_hides_dialog(self, test_client):
        data = test_client.post("/api/restaurants/bistro/session/continue").json()

        assert data["active"] is True
        assert data["dialog_visible"] is False

    def test_end_stops_monitoring(self, test_client):
        test_client.get("/api/restaurants/bistro/menu/items/salad")

        data = test_client.post("/api/restaurants/bistro/session/end").json()

        assert data["active"] is False
        assert data["current_item_id"] is None

    def test_checkout_ends_session(self, test_client):
        """Placing the order closes the item dialog."""
        test_client.post("/api/restaurants/bistro/cart/items", json={"menu_item_id": "salad"})
        test_client.get("/api/restaurants/bistro/menu/items/wrap")

        assert test_client.post("/api/restaurants/bistro/orders/checkout", json={}).status_code == 200

        assert test_client.get("/api/restaurants/bistro/session").json()["current_item_id"] is None


class TestBackendSelection:
    """Test choosing the persistence backend from settings."""

    def test_memory_backend_from_catalog(self, monkeypatch, catalog_path):
        monkeypatch.setattr(settings, "backend", "memory")
        monkeypatch.setattr(settings, "catalog_path", str(catalog_path))
        monkeypatch.setattr(dependencies, "_backend", None)

        backend = dependencies.get_backend()

        assert isinstance(backend, InMemoryBackend)
        assert backend.tables["restaurants"][0]["id"] == "bistro"
        assert dependencies.get_backend() is backend

"""Unit tests for admin and health endpoints."""
from kiosk.core.dependencies import _menu_caches, get_backend
from kiosk.core.errors import AuthorizationError, BackendError
from kiosk.main import app
from kiosk.services.backend.memory import InMemoryBackend


class TestApiKeys:
    """Test storing restaurant service keys."""

    def test_requires_auth(self, test_client):
        response = test_client.put("/api/admin/restaurants/bistro/api-keys/printnode", json={"api_key": "k"})

        assert response.status_code == 401

    def test_store_key(self, authenticated_client, api_keys, memory_backend):
        """The key reaches the backend and an audit event is written."""
        response = authenticated_client.put(
            "/api/admin/restaurants/bistro/api-keys/printnode", json={"api_key": "pn-secret"}
        )

        assert response.status_code == 200
        assert response.json()["rotated"] is False
        assert api_keys[("bistro", "printnode", "primary")] == "pn-secret"
        events = [row["event_type"] for row in memory_backend.tables["security_audit_log"]]
        assert events[-1] == "api_key_stored"
        assert "pn-secret" not in str(memory_backend.tables["security_audit_log"])

    def test_rotate_key(self, authenticated_client, api_keys):
        api_keys[("bistro", "printnode", "primary")] = "old"

        response = authenticated_client.put(
            "/api/admin/restaurants/bistro/api-keys/printnode", json={"api_key": "new", "rotate": True}
        )

        assert response.json()["rotated"] is True
        assert api_keys[("bistro", "printnode", "primary")] == "new"

    def test_invalid_service_name(self, authenticated_client):
        response = authenticated_client.put(
            "/api/admin/restaurants/bistro/api-keys/%3Cscript%3E", json={"api_key": "k"}
        )

        assert response.status_code == 422

    def test_empty_key_rejected(self, authenticated_client):
        response = authenticated_client.put(
            "/api/admin/restaurants/bistro/api-keys/printnode", json={"api_key": ""}
        )

        assert response.status_code == 422

    def test_permission_denied(self, authenticated_client, memory_backend):
        """A refused RPC maps to 403 and is audited."""

        async def refuse(args):
            raise AuthorizationError("rpc", "store_encrypted_api_key", "permission denied")

        memory_backend.register_rpc("store_encrypted_api_key", refuse)

        response = authenticated_client.put(
            "/api/admin/restaurants/bistro/api-keys/printnode", json={"api_key": "k"}
        )

        assert response.status_code == 403
        assert memory_backend.tables["security_audit_log"][-1]["event_type"] == "api_key_denied"

    def test_missing_rpc(self, authenticated_client, catalog_path):
        """Without the key functions the backend error surfaces as 502."""
        app.dependency_overrides[get_backend] = lambda: InMemoryBackend.from_yaml(catalog_path)

        response = authenticated_client.put(
            "/api/admin/restaurants/bistro/api-keys/printnode", json={"api_key": "k"}
        )

        assert response.status_code == 502


class TestPrintConfigAdmin:
    """Test updating a restaurant's printers."""

    def test_requires_auth(self, test_client):
        response = test_client.put("/api/admin/restaurants/bistro/print-config", json={"configured_printers": ["1"]})

        assert response.status_code == 401

    def test_update_print_config(self, authenticated_client, memory_backend):
        """The row is created or updated and duplicate printers collapse."""
        response = authenticated_client.put(
            "/api/admin/restaurants/bistro/print-config",
            json={"configured_printers": ["70001", "70002", "70001"], "browser_printing_enabled": False},
        )

        assert response.status_code == 200
        assert response.json() == {
            "restaurant_id": "bistro",
            "configured_printers": ["70001", "70002"],
            "browser_printing_enabled": False,
        }
        rows = [r for r in memory_backend.tables["restaurant_print_config"] if r["restaurant_id"] == "bistro"]
        assert len(rows) == 1
        assert rows[0]["configured_printers"] == ["70001", "70002"]
        assert memory_backend.tables["security_audit_log"][-1]["event_type"] == "print_config_updated"

    def test_malicious_printer_name_rejected(self, authenticated_client):
        response = authenticated_client.put(
            "/api/admin/restaurants/bistro/print-config", json={"configured_printers": ["<script>x</script>"]}
        )

        assert response.status_code == 422


class TestStockAdmin:
    """Test toggling stock on items and toppings."""

    def test_requires_auth(self, test_client):
        response = test_client.patch("/api/admin/restaurants/bistro/menu-items/salad/stock", json={"in_stock": False})

        assert response.status_code == 401

    def test_item_stock_refreshes_cached_menu(self, authenticated_client):
        """A cached menu is dropped so the kiosk sees the change at once."""
        menu = authenticated_client.get("/api/restaurants/bistro/menu").json()
        assert menu["categories"][0]["items"][1]["in_stock"] is True

        response = authenticated_client.patch(
            "/api/admin/restaurants/bistro/menu-items/salad/stock", json={"in_stock": False}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "id": "salad", "in_stock": False}
        menu = authenticated_client.get("/api/restaurants/bistro/menu").json()
        salad = next(i for i in menu["categories"][0]["items"] if i["id"] == "salad")
        assert salad["in_stock"] is False
        added = authenticated_client.post("/api/restaurants/bistro/cart/items", json={"menu_item_id": "salad"})
        assert added.status_code == 422

    def test_topping_stock_refreshes_cached_item(self, authenticated_client, memory_backend):
        authenticated_client.get("/api/restaurants/bistro/menu/items", params={"ids": "burger"})

        response = authenticated_client.patch(
            "/api/admin/restaurants/bistro/toppings/cheese/stock", json={"in_stock": False}
        )

        assert response.status_code == 200
        item = authenticated_client.get("/api/restaurants/bistro/menu/items", params={"ids": "burger"}).json()
        extras = next(c for c in item["burger"]["item"]["topping_categories"] if c["id"] == "extras")
        cheese = next(t for t in extras["toppings"] if t["id"] == "cheese")
        assert cheese["in_stock"] is False
        assert memory_backend.tables["security_audit_log"][-1]["event_type"] == "stock_updated"

    def test_other_restaurant_item_not_found(self, authenticated_client, memory_backend):
        """Stock can only be changed on the restaurant's own catalog."""
        response = authenticated_client.patch(
            "/api/admin/restaurants/diner/menu-items/salad/stock", json={"in_stock": False}
        )

        assert response.status_code == 404
        salad = next(r for r in memory_backend.tables["menu_items"] if r["id"] == "salad")
        assert salad["in_stock"] is True

    def test_unknown_topping(self, authenticated_client):
        response = authenticated_client.patch(
            "/api/admin/restaurants/bistro/toppings/nope/stock", json={"in_stock": True}
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Topping not found"


class TestCacheAdmin:
    """Test clearing the menu caches."""

    def test_clear_caches(self, authenticated_client):
        authenticated_client.get("/api/restaurants/bistro/menu")
        assert "bistro" in _menu_caches

        response = authenticated_client.post("/api/admin/cache/clear")

        assert response.json() == {"success": True}
        assert _menu_caches == {}

    def test_logout_drops_caches(self, authenticated_client):
        authenticated_client.get("/api/restaurants/bistro/menu")

        authenticated_client.post("/api/auth/logout")

        assert _menu_caches == {}


class TestHealth:
    """Test health check endpoint."""

    def test_health_check(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "backend": "ok"}

    def test_degraded_backend(self, test_client, catalog_path):
        class DownBackend(InMemoryBackend):
            async def count(self, table, filters=None):
                raise BackendError("count", table, "connection refused")

        app.dependency_overrides[get_backend] = lambda: DownBackend.from_yaml(catalog_path)

        response = test_client.get("/health")

        assert response.json() == {"status": "degraded", "backend": "unavailable"}

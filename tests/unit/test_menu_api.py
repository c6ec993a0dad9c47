"""Unit tests for menu API endpoints."""
import pytest


class TestMenuAPI:
    """Test menu API endpoints."""

    def test_get_menu_success(self, test_client):
        """Test GET menu returns the restaurant and its categories."""
        response = test_client.get("/api/restaurants/bistro/menu")

        assert response.status_code == 200
        data = response.json()
        assert data["restaurant"]["name"] == "Le Petit Bistro"
        assert [c["id"] for c in data["categories"]] == ["mains", "drinks"]
        assert [i["id"] for i in data["categories"][0]["items"]] == ["burger", "salad", "wrap", "brunch"]

    def test_menu_localized(self, test_client):
        """Names follow the restaurant language unless one is requested."""
        french = test_client.get("/api/restaurants/bistro/menu").json()
        english = test_client.get("/api/restaurants/bistro/menu", params={"language": "en"}).json()

        assert french["categories"][0]["items"][0]["name"] == "Burger maison"
        assert english["categories"][0]["items"][0]["name"] == "Burger"
        assert english["categories"][0]["name"] == "Mains"

    def test_promotion_price_displayed(self, test_client):
        """Promoted items show their promotion price."""
        data = test_client.get("/api/restaurants/bistro/menu").json()
        wrap = next(i for i in data["categories"][0]["items"] if i["id"] == "wrap")

        assert wrap["has_promotion"] is True
        assert wrap["price"] == "7.00"
        assert wrap["display_price"] == "6.00"

    def test_out_of_stock_not_available(self, test_client):
        data = test_client.get("/api/restaurants/bistro/menu").json()
        juice = data["categories"][1]["items"][0]

        assert juice["in_stock"] is False
        assert juice["available"] is False

    def test_unknown_restaurant(self, test_client):
        """Test 404 for a restaurant that does not exist."""
        response = test_client.get("/api/restaurants/nope/menu")

        assert response.status_code == 404
        assert response.json()["detail"] == "Restaurant not found"


class TestMenuItemsAPI:
    """Test the batch item detail endpoint."""

    def test_batch_items(self, test_client):
        """Each requested id gets its own result."""
        response = test_client.get("/api/restaurants/bistro/menu/items", params={"ids": "burger,nope,salad"})

        assert response.status_code == 200
        data = response.json()
        assert list(data) == ["burger", "nope", "salad"]
        assert data["burger"]["success"] is True
        assert data["burger"]["item"]["options"][0]["id"] == "size"
        assert data["nope"]["success"] is False
        assert data["nope"]["error"] == "Item not found"

    def test_repeated_query_params(self, test_client):
        response = test_client.get("/api/restaurants/bistro/menu/items?ids=burger&ids=salad")

        assert sorted(response.json()) == ["burger", "salad"]

    @pytest.mark.parametrize("query", ["ids=", "ids=,"])
    def test_empty_ids_rejected(self, test_client, query):
        """Test 400 when no usable id is given."""
        response = test_client.get(f"/api/restaurants/bistro/menu/items?{query}")

        assert response.status_code == 400


class TestRateLimit:
    """Test the API request limit."""

    def test_over_limit_rejected(self, test_client, monkeypatch):
        """Clients over the request limit get 429."""
        from kiosk.core.config import settings

        monkeypatch.setattr(settings, "api_max_requests", 2)
        for _ in range(2):
            assert test_client.get("/api/restaurants/bistro/menu").status_code == 200

        response = test_client.get("/api/restaurants/bistro/menu")

        assert response.status_code == 429
        assert "Retry-After" in response.headers

"""Unit tests for receipt preview, checkout and order history endpoints."""
from datetime import datetime

import pytest


@pytest.fixture
def filled_cart(test_client):
    """3x large burger with cheese, bacon and ketchup, plus one salad."""
    test_client.post(
        "/api/restaurants/bistro/cart/items",
        json={
            "menu_item_id": "burger",
            "quantity": 3,
            "selected_options": [{"option_id": "size", "choice_ids": ["large"]}],
            "selected_toppings": [
                {"category_id": "extras", "topping_ids": ["cheese", "bacon"]},
                {"category_id": "sauces", "topping_ids": ["ketchup"]},
            ],
        },
    )
    test_client.post("/api/restaurants/bistro/cart/items", json={"menu_item_id": "salad"})
    return test_client


class TestCheckout:
    """Test placing orders."""

    def test_checkout(self, filled_cart, memory_backend):
        """The order is stored, printed in the browser and the cart emptied."""
        response = filled_cart.post(
            "/api/restaurants/bistro/orders/checkout", json={"order_type": "dine-in", "table_number": "5"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["order_number"] == "1"
        assert data["totals"]["total"] == "41.80"
        assert data["print"]["success"] is True
        assert data["print"]["results"] == [
            {"printer_id": "browser", "success": True, "job_id": None, "error": None}
        ]
        page = data["browser_print"][0]["html"]
        assert "Sur place - Table No: 5" in page
        assert "41.80 €" in page

        order = memory_backend.tables["orders"][0]
        assert order["id"] == data["order_id"]
        assert order["status"] == "completed"
        assert order["table_number"] == "5"
        assert filled_cart.get("/api/restaurants/bistro/cart").json()["items"] == []

    def test_order_numbers_increase(self, filled_cart):
        first = filled_cart.post("/api/restaurants/bistro/orders/checkout", json={}).json()
        filled_cart.post("/api/restaurants/bistro/cart/items", json={"menu_item_id": "salad"})
        second = filled_cart.post("/api/restaurants/bistro/orders/checkout", json={}).json()

        assert (first["order_number"], second["order_number"]) == ("1", "2")

    def test_empty_cart_rejected(self, test_client, memory_backend):
        """Test 400 when there is nothing to order."""
        response = test_client.post("/api/restaurants/bistro/orders/checkout", json={})

        assert response.status_code == 400
        assert response.json()["detail"] == "Cart is empty"
        assert memory_backend.tables["orders"] == []

    def test_malicious_table_number(self, filled_cart):
        response = filled_cart.post(
            "/api/restaurants/bistro/orders/checkout", json={"table_number": "<script>x</script>"}
        )

        assert response.status_code == 422
        assert len(filled_cart.get("/api/restaurants/bistro/cart").json()["items"]) == 2

    def test_printnode_failure_does_not_block_order(self, filled_cart, memory_backend, api_keys, monkeypatch):
        """An unreachable PrintNode printer is reported while the order still goes through."""
        from kiosk.core.config import settings

        monkeypatch.setattr(settings, "printnode_api_url", "http://127.0.0.1:9")
        monkeypatch.setattr(settings, "print_timeout_seconds", 1)
        api_keys[("bistro", "printnode", "primary")] = "pn-key"
        memory_backend.tables["restaurant_print_config"].append(
            {"id": "cfg", "restaurant_id": "bistro", "configured_printers": ["70001"], "browser_printing_enabled": True}
        )

        data = filled_cart.post("/api/restaurants/bistro/orders/checkout", json={}).json()

        assert data["print"]["summary"] == {"successful": 1, "failed": 1, "total": 2}
        failed = next(r for r in data["print"]["results"] if not r["success"])
        assert failed["printer_id"] == "70001"
        assert memory_backend.tables["orders"][0]["status"] == "completed"


class TestReceiptPreview:
    """Test the receipt preview endpoint."""

    def test_plain_preview(self, filled_cart):
        response = filled_cart.get("/api/restaurants/bistro/receipt/preview", params={"format": "plain"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "3x Burger maison" in response.text
        assert "Commande No: 1" in response.text

    def test_html_preview_in_english(self, filled_cart):
        response = filled_cart.get("/api/restaurants/bistro/receipt/preview", params={"language": "en"})

        assert response.headers["content-type"].startswith("text/html")
        assert "Order No: 1" in response.text

    def test_unknown_format(self, filled_cart):
        response = filled_cart.get("/api/restaurants/bistro/receipt/preview", params={"format": "pdf"})

        assert response.status_code == 422


class TestOrderHistory:
    """Test the order history endpoint."""

    def test_requires_auth(self, test_client):
        assert test_client.get("/api/restaurants/bistro/orders").status_code == 401

    def test_lists_orders(self, filled_cart, authenticated_client):
        """Placed orders show up in the history."""
        authenticated_client.post("/api/restaurants/bistro/orders/checkout", json={})

        orders = authenticated_client.get("/api/restaurants/bistro/orders").json()

        assert [o["order_number"] for o in orders] == ["1"]
        assert orders[0]["items"][0]["menu_item_id"] == "burger"

    def test_limit_applied_by_backend(self, authenticated_client, memory_backend, monkeypatch):
        """Only ``limit`` rows are read, newest first."""
        for number in range(1, 4):
            memory_backend.tables["orders"].append(
                {
                    "id": f"o{number}",
                    "restaurant_id": "bistro",
                    "order_number": str(number),
                    "created_at": datetime(2026, 3, 14, 12, number),
                }
            )
        limits = []
        query = memory_backend.query

        async def recording_query(table, filters=None, order_by=None, limit=None):
            limits.append(limit)
            return await query(table, filters, order_by, limit)

        monkeypatch.setattr(memory_backend, "query", recording_query)

        orders = authenticated_client.get("/api/restaurants/bistro/orders", params={"limit": 2}).json()

        assert [o["order_number"] for o in orders] == ["3", "2"]
        assert limits == [2]

"""Unit tests for cart API endpoints."""
import pytest

from kiosk.services.cart.manager import cart_key

LARGE_BURGER = {
    "menu_item_id": "burger",
    "quantity": 3,
    "selected_options": [{"option_id": "size", "choice_ids": ["large"]}],
    "selected_toppings": [
        {"category_id": "extras", "topping_ids": ["cheese", "bacon"]},
        {"category_id": "sauces", "topping_ids": ["ketchup"]},
    ],
}


@pytest.fixture
def cart_url():
    return "/api/restaurants/bistro/cart"


class TestCartAPI:
    """Test cart API endpoints."""

    def test_empty_cart(self, test_client, cart_url):
        """A new cart has no lines and zero totals."""
        response = test_client.get(cart_url)

        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["totals"]["total"] == "0.00"

    def test_add_items(self, test_client, cart_url):
        """Adding the burger and a salad yields the expected totals."""
        test_client.post(f"{cart_url}/items", json=LARGE_BURGER)
        response = test_client.post(f"{cart_url}/items", json={"menu_item_id": "salad"})

        assert response.status_code == 201
        data = response.json()
        assert [line["item_price"] for line in data["items"]] == ["11.00", "5.00"]
        assert data["totals"]["subtotal"] == "38.00"
        assert data["totals"]["tax"] == "3.80"
        assert data["totals"]["total"] == "41.80"
        assert data["totals"]["item_count"] == 4

    def test_cart_persisted_per_restaurant(self, test_client, cart_url, store):
        test_client.post(f"{cart_url}/items", json={"menu_item_id": "salad"})

        assert len(store.get(cart_key("bistro"))) == 1
        assert test_client.get("/api/restaurants/diner/cart").json()["items"] == []

    def test_missing_required_option(self, test_client, cart_url):
        """An invalid selection is rejected with its violations."""
        response = test_client.post(f"{cart_url}/items", json={"menu_item_id": "burger"})

        assert response.status_code == 422
        codes = [v["code"] for v in response.json()["detail"]["violations"]]
        assert codes == ["option_required"]
        assert test_client.get(cart_url).json()["items"] == []

    def test_out_of_stock_rejected(self, test_client, cart_url):
        response = test_client.post(f"{cart_url}/items", json={"menu_item_id": "juice"})

        assert response.status_code == 422
        assert response.json()["detail"]["violations"][0]["code"] == "item_out_of_stock"

    def test_negative_topping_quantity_rejected(self, test_client, cart_url):
        response = test_client.post(
            f"{cart_url}/items",
            json={
                "menu_item_id": "burger",
                "selected_options": [{"option_id": "size", "choice_ids": ["regular"]}],
                "selected_toppings": [
                    {"category_id": "extras", "topping_ids": ["bacon"], "topping_quantities": {"bacon": -5}}
                ],
            },
        )

        assert response.status_code == 422
        assert response.json()["detail"]["violations"][0]["code"] == "invalid_topping_quantity"
        assert test_client.get(cart_url).json()["items"] == []

    def test_malicious_instructions_rejected(self, test_client, cart_url):
        response = test_client.post(
            f"{cart_url}/items",
            json={"menu_item_id": "salad", "special_instructions": "<script>alert(1)</script>"},
        )

        assert response.status_code == 422
        violation = response.json()["detail"]["violations"][0]
        assert violation["code"] == "special_instructions_invalid"

    def test_unknown_item(self, test_client, cart_url):
        response = test_client.post(f"{cart_url}/items", json={"menu_item_id": "nope"})

        assert response.status_code == 404

    def test_update_quantity(self, test_client, cart_url):
        """Quantity changes reprice the cart; zero removes the line."""
        line = test_client.post(f"{cart_url}/items", json={"menu_item_id": "salad"}).json()["items"][0]

        updated = test_client.patch(f"{cart_url}/items/{line['id']}", json={"quantity": 2}).json()
        assert updated["totals"]["subtotal"] == "10.00"

        removed = test_client.patch(f"{cart_url}/items/{line['id']}", json={"quantity": 0}).json()
        assert removed["items"] == []

    def test_update_unknown_line(self, test_client, cart_url):
        response = test_client.patch(f"{cart_url}/items/nope", json={"quantity": 2})

        assert response.status_code == 404

    def test_topping_quantity(self, test_client, cart_url):
        """Topping quantities reprice the line."""
        line = test_client.post(
            f"{cart_url}/items",
            json={
                "menu_item_id": "burger",
                "selected_options": [{"option_id": "size", "choice_ids": ["regular"]}],
                "selected_toppings": [{"category_id": "extras", "topping_ids": ["cheese"]}],
            },
        ).json()["items"][0]

        response = test_client.put(f"{cart_url}/items/{line['id']}/toppings/extras/cheese", json={"quantity": 2})

        assert response.status_code == 200
        assert response.json()["items"][0]["item_price"] == "9.00"

    def test_repeat_topping_not_allowed(self, test_client, cart_url):
        line = test_client.post(f"{cart_url}/items", json=LARGE_BURGER).json()["items"][0]

        response = test_client.put(f"{cart_url}/items/{line['id']}/toppings/sauces/ketchup", json={"quantity": 2})

        assert response.status_code == 422
        assert response.json()["detail"]["violations"][0]["code"] == "topping_quantity_not_allowed"

    def test_remove_topping(self, test_client, cart_url):
        line = test_client.post(f"{cart_url}/items", json=LARGE_BURGER).json()["items"][0]

        response = test_client.delete(f"{cart_url}/items/{line['id']}/toppings/extras/bacon")

        assert response.json()["items"][0]["item_price"] == "10.00"

    def test_remove_and_clear(self, test_client, cart_url):
        first = test_client.post(f"{cart_url}/items", json={"menu_item_id": "salad"}).json()["items"][0]
        test_client.post(f"{cart_url}/items", json={"menu_item_id": "wrap"})

        remaining = test_client.delete(f"{cart_url}/items/{first['id']}").json()
        assert [line["menu_item"]["id"] for line in remaining["items"]] == ["wrap"]
        assert remaining["items"][0]["item_price"] == "6.00"

        assert test_client.delete(cart_url).json()["items"] == []

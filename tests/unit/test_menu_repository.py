"""Unit tests for the menu repository over both backends."""
from decimal import Decimal

import pytest

from kiosk.core.errors import BackendError
from kiosk.services.backend.memory import InMemoryBackend
from kiosk.services.menu.repository import MenuRepository


class FailingBackend(InMemoryBackend):
    """Backend whose option query fails."""

    async def query(self, table, filters=None, order_by=None):
        if table == "menu_item_options":
            raise BackendError("select", table, "connection reset")
        return await super().query(table, filters, order_by)


class TestMenuRepository:
    """Test menu reads against the in-memory backend."""

    @pytest.mark.asyncio
    async def test_get_restaurant(self, repository):
        restaurant = await repository.get_restaurant("bistro")

        assert restaurant.name == "Le Petit Bistro"
        assert restaurant.currency == "EUR"
        assert restaurant.tax_rate == Decimal("10")
        assert restaurant.ui_language == "fr"

    @pytest.mark.asyncio
    async def test_restaurant_defaults(self, repository):
        restaurant = await repository.get_restaurant("diner")

        assert restaurant.currency == "USD"
        assert restaurant.tax_rate == Decimal("10")

    @pytest.mark.asyncio
    async def test_missing_restaurant(self, repository):
        assert await repository.get_restaurant("nope") is None

    @pytest.mark.asyncio
    async def test_get_menu_in_display_order(self, repository):
        categories = await repository.get_menu("bistro")

        assert [c.id for c in categories] == ["mains", "drinks"]
        assert [i.id for i in categories[0].items] == ["burger", "salad", "wrap", "brunch"]
        assert categories[0].localized_name("en") == "Mains"
        assert categories[0].items[0].options == []

    @pytest.mark.asyncio
    async def test_empty_menu(self, repository):
        assert await repository.get_menu("diner") == []

    @pytest.mark.asyncio
    async def test_item_with_options(self, burger):
        assert burger.localized_name("fr") == "Burger maison"
        assert burger.localized_name("de") == "Burger"
        assert [c.id for c in burger.find_option("size").choices] == ["regular", "large"]
        assert burger.find_option("size").find_choice("large").price == Decimal("1.50")
        assert [c.id for c in burger.topping_categories] == ["extras", "sauces", "dips"]
        assert burger.find_category("sauces").show_if_selection_id == ["large"]
        assert not burger.find_category("extras").find_topping("egg").in_stock

    @pytest.mark.asyncio
    async def test_batch_resolves_each_id(self, repository):
        results = await repository.get_items_with_options(["burger", "nope", "salad", "burger"])

        assert list(results) == ["burger", "nope", "salad"]
        assert results["burger"].success
        assert not results["nope"].success
        assert results["nope"].error == "Item not found"
        assert results["salad"].item.price == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_batch_query_count_is_constant(self, memory_backend, repository):
        await repository.get_items_with_options(["burger"])
        single = len(memory_backend.query_log)
        memory_backend.query_log.clear()

        await repository.get_items_with_options(["burger", "salad", "wrap", "brunch", "juice"])

        assert len(memory_backend.query_log) == single == 6

    @pytest.mark.asyncio
    async def test_batch_failure_marks_every_id(self, catalog_path):
        repository = MenuRepository(FailingBackend.from_yaml(catalog_path))

        results = await repository.get_items_with_options(["burger", "salad"])

        assert not results["burger"].success
        assert not results["salad"].success
        assert "connection reset" in results["burger"].error

    @pytest.mark.asyncio
    async def test_empty_batch(self, repository):
        assert await repository.get_items_with_options([]) == {}


class TestSqlBackend:
    """Test the SQLAlchemy backend with the same catalog."""

    @pytest.mark.asyncio
    async def test_item_with_options(self, sql_backend):
        repository = MenuRepository(sql_backend)

        burger = await repository.get_item_with_options("burger")

        assert burger.price == Decimal("8.00")
        assert burger.localized_name("fr") == "Burger maison"
        assert burger.find_option("size").find_choice("large").price == Decimal("1.50")
        assert [c.id for c in burger.topping_categories] == ["extras", "sauces", "dips"]
        assert burger.find_category("dips").show_if_selection_type == ["topping"]

    @pytest.mark.asyncio
    async def test_menu(self, sql_backend):
        categories = await MenuRepository(sql_backend).get_menu("bistro")

        assert [c.id for c in categories] == ["mains", "drinks"]
        assert categories[1].items[0].in_stock is False

    @pytest.mark.asyncio
    async def test_order_by_descending(self, sql_backend):
        rows = await sql_backend.query("menu_items", {"category_id": "mains"}, order_by=["-display_order"])

        assert [r["id"] for r in rows] == ["brunch", "wrap", "salad", "burger"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, sql_backend):
        updated = await sql_backend.update("menu_items", {"in_stock": False}, {"id": "salad"})
        assert updated[0]["in_stock"] is False

        removed = await sql_backend.delete("toppings", {"category_id": "dips"})
        assert removed == 1

    @pytest.mark.asyncio
    async def test_null_filter(self, sql_backend):
        rows = await sql_backend.query("menu_items", {"promotion_price": None})

        assert "wrap" not in [r["id"] for r in rows]

    @pytest.mark.asyncio
    async def test_unknown_table_and_column(self, sql_backend):
        with pytest.raises(BackendError):
            await sql_backend.query("calls")
        with pytest.raises(BackendError):
            await sql_backend.query("menu_items", {"colour": "red"})

    @pytest.mark.asyncio
    async def test_rpc_errors_are_wrapped(self, sql_backend):
        with pytest.raises(BackendError):
            await sql_backend.rpc("get_encrypted_api_key", {"p_restaurant_id": "bistro"})
        with pytest.raises(BackendError):
            await sql_backend.rpc("drop table x", {})


class TestInMemoryBackend:
    """Test the in-memory backend."""

    @pytest.mark.asyncio
    async def test_unknown_rpc(self, memory_backend):
        with pytest.raises(BackendError):
            await memory_backend.rpc("missing_function")

    @pytest.mark.asyncio
    async def test_insert_assigns_id(self, memory_backend):
        row = await memory_backend.insert("payments", {"order_id": "o1", "status": "pending", "amount": 1})

        assert row["id"]
        assert await memory_backend.count("payments") == 1

    @pytest.mark.asyncio
    async def test_returned_rows_are_copies(self, memory_backend):
        row = await memory_backend.query_one("menu_items", {"id": "salad"})
        row["name"] = "Changed"

        assert (await memory_backend.query_one("menu_items", {"id": "salad"}))["name"] == "Salad"

    def test_unknown_table_in_yaml(self):
        with pytest.raises(BackendError):
            InMemoryBackend(tables={"calls": []})

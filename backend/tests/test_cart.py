"""
Cart tests: stock ceiling at add/update time, lenient quantity parsing and
anonymous access.
"""

import pytest

from storefront.models import CartItem
from storefront.services import cart_service
from storefront.services.cart_service import OutOfStockError
from storefront.validation import NotFoundError


class TestCartService:

    def test_add_accumulates(self, app, customer, make_product):
        apples = make_product("Apples", price="1.50", stock=10)

        cart_service.add(customer.id, apples.id, 3)
        line, _ = cart_service.add(customer.id, apples.id, 4)

        assert line.quantity == 7
        assert cart_service.cart_count(customer.id) == 7

    def test_add_above_stock_fails(self, app, customer, make_product, db_session):
        apples = make_product("Apples", price="1.50", stock=2)

        with pytest.raises(OutOfStockError) as exc:
            cart_service.add(customer.id, apples.id, 3)

        assert str(exc.value) == "Only 2 left in stock."
        assert exc.value.available == 2
        assert db_session.query(CartItem).count() == 0

    def test_add_cannot_push_existing_line_over_stock(self, app, customer, make_product):
        apples = make_product("Apples", price="1.50", stock=5)
        cart_service.add(customer.id, apples.id, 4)

        with pytest.raises(OutOfStockError, match=r"Cannot exceed stock quantity \(5\)\."):
            cart_service.add(customer.id, apples.id, 2)

        assert cart_service.get_cart_items(customer.id)[0].quantity == 4

    def test_add_unknown_product(self, app, customer):
        with pytest.raises(NotFoundError):
            cart_service.add(customer.id, 999999, 1)

    def test_set_quantity_checks_stock(self, app, customer, make_product):
        apples = make_product("Apples", price="1.50", stock=5)
        cart_service.add(customer.id, apples.id, 1)

        line = cart_service.set_quantity(customer.id, apples.id, 5)
        assert line.quantity == 5

        with pytest.raises(OutOfStockError, match="Only 5 left in stock."):
            cart_service.set_quantity(customer.id, apples.id, 6)

    def test_list_cart_subtotals(self, app, customer, make_product):
        cart_service.add(customer.id, make_product("Milk", price="3.50", stock=9).id, 2)
        cart_service.add(customer.id, make_product("Bread", price="2.20", stock=9).id, 1)

        cart = cart_service.list_cart(customer.id)

        assert [i["subtotal"] for i in cart["items"]] == ["7.00", "2.20"]
        assert cart["subtotal"] == "9.20"
        assert cart["count"] == 3

    def test_anonymous_cart_is_empty(self, app, db_session):
        assert cart_service.list_cart(None) == {"items": [], "count": 0, "subtotal": "0.00"}
        assert cart_service.cart_count(None) == 0

    def test_remove_and_clear(self, app, customer, make_product):
        a = make_product("A", stock=5)
        b = make_product("B", stock=5)
        cart_service.add(customer.id, a.id, 1)
        cart_service.add(customer.id, b.id, 1)

        assert cart_service.remove(customer.id, a.id) is True
        assert cart_service.remove(customer.id, a.id) is False
        assert cart_service.clear(customer.id) == 1
        assert cart_service.list_cart(customer.id)["items"] == []


class TestCartRoutes:

    def test_anonymous_get_cart(self, client, db_session):
        resp = client.get("/api/cart")

        assert resp.status_code == 200
        assert resp.get_json()["count"] == 0

    def test_anonymous_add_requires_login(self, client, make_product):
        product = make_product("Milk", stock=5)

        resp = client.post(f"/api/cart/items/{product.id}", json={"quantity": 1})

        assert resp.status_code == 401
        assert resp.get_json()["redirect"] == "/api/auth/login"

    @pytest.mark.parametrize("raw", ["abc", 0, -4, None, "", True, "inf", "-inf"])
    def test_lenient_quantity_counts_as_one(self, client, customer_headers, make_product, raw):
        product = make_product("Milk", stock=5)

        resp = client.post(f"/api/cart/items/{product.id}", json={"quantity": raw}, headers=customer_headers)

        assert resp.status_code == 200
        assert resp.get_json()["item"]["quantity"] == 1

    def test_add_over_stock_returns_409(self, client, customer_headers, make_product):
        product = make_product("Milk", stock=2)

        resp = client.post(f"/api/cart/items/{product.id}", json={"quantity": 3}, headers=customer_headers)

        assert resp.status_code == 409
        data = resp.get_json()
        assert data["error"] == "Only 2 left in stock."
        assert data["available"] == 2

    def test_update_and_remove(self, client, customer_headers, make_product):
        product = make_product("Milk", price="3.50", stock=5)
        client.post(f"/api/cart/items/{product.id}", json={"quantity": 1}, headers=customer_headers)

        resp = client.put(f"/api/cart/items/{product.id}", json={"quantity": 4}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["subtotal"] == "14.00"

        resp = client.delete(f"/api/cart/items/{product.id}", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 0

        resp = client.delete(f"/api/cart/items/{product.id}", headers=customer_headers)
        assert resp.status_code == 404

    def test_listing_reports_cart_count(self, client, customer_headers, make_product):
        product = make_product("Milk", stock=5)
        client.post(f"/api/cart/items/{product.id}", json={"quantity": 2}, headers=customer_headers)

        assert client.get("/api/products", headers=customer_headers).get_json()["cart_count"] == 2
        assert client.get("/api/products").get_json()["cart_count"] == 0

"""
Checkout / order pipeline tests.

Verifies:
- total = sum(price x qty) + delivery fee, computed server-side
- Fee table (pickup 0, normal 10, express 15, unknown -> normal)
- Empty cart writes nothing
- Stock is decremented and the cart cleared
- A stock guard miss still places the order, with a warning
- A failed order write rolls back header and lines together
"""

from decimal import Decimal

import pytest

from sqlalchemy.exc import SQLAlchemyError

from storefront.extensions import db
from storefront.models import Order, OrderItem, CartItem, Product
from storefront.schemas import CheckoutRequest
from storefront.services import cart_service, order_service
from storefront.services.order_service import (
    EmptyCartError,
    OrderCreationFailed,
    STOCK_WARNING,
    PICKUP_ADDRESS,
    compute_order_total,
    resolve_delivery_fee,
    resolve_delivery_method,
)
from storefront.validation import ValidationError


# =============================================================================
# PURE PRICING
# =============================================================================


class TestDeliveryFees:

    @pytest.mark.parametrize(
        "method,fee",
        [
            ("pickup", Decimal("0.00")),
            ("normal", Decimal("10.00")),
            ("express", Decimal("15.00")),
            ("drone", Decimal("10.00")),
            (None, Decimal("10.00")),
            ("", Decimal("10.00")),
        ],
    )
    def test_fee_table(self, method, fee):
        assert resolve_delivery_fee(method) == fee

    def test_unknown_method_is_stored_as_normal(self):
        assert resolve_delivery_method("teleport") == "normal"
        assert resolve_delivery_method("express") == "express"

    def test_express_scenario_totals_forty(self):
        subtotal, total = compute_order_total(
            [(Decimal("10.00"), 2), (Decimal("5.00"), 1)],
            resolve_delivery_fee("express"),
        )
        assert subtotal == Decimal("25.00")
        assert total == Decimal("40.00")

    def test_totals_are_exact_to_the_cent(self):
        subtotal, total = compute_order_total([("0.10", 3), ("0.20", 1)], Decimal("0"))
        assert subtotal == Decimal("0.50")
        assert total == Decimal("0.50")


# =============================================================================
# SERVICE: place_order
# =============================================================================


class TestPlaceOrder:

    def test_places_order_and_snapshots_lines(self, app, customer, make_product, put_in_cart, db_session):
        bread = make_product("Bread", price="10.00", stock=5)
        milk = make_product("Milk", price="5.00", stock=3)
        put_in_cart(customer, bread, 2)
        put_in_cart(customer, milk, 1)

        placed = order_service.place_order(
            customer.id,
            CheckoutRequest(delivery_method="express", delivery_address="1 Main St"),
        )

        order = placed.order
        assert placed.warnings == []
        assert order.total == Decimal("40.00")
        assert order.delivery_fee == Decimal("15.00")
        assert order.delivery_method == "express"
        assert order.status == "pending"
        assert [(i.product_name, i.quantity, i.price) for i in order.items] == [
            ("Bread", 2, Decimal("10.00")),
            ("Milk", 1, Decimal("5.00")),
        ]

        db_session.expire_all()
        assert db_session.get(Product, bread.id).stock == 3
        assert db_session.get(Product, milk.id).stock == 2
        assert db_session.query(CartItem).filter_by(user_id=customer.id).count() == 0

    def test_total_uses_current_catalog_price(self, app, customer, make_product, put_in_cart, db_session):
        tea = make_product("Tea", price="2.00", stock=10)
        put_in_cart(customer, tea, 3)

        tea.price = Decimal("3.00")
        db_session.commit()

        placed = order_service.place_order(
            customer.id, CheckoutRequest(delivery_method="pickup")
        )
        assert placed.order.total == Decimal("9.00")

    def test_empty_cart_writes_nothing(self, app, customer, db_session):
        with pytest.raises(EmptyCartError):
            order_service.place_order(
                customer.id,
                CheckoutRequest(delivery_method="normal", delivery_address="1 Main St"),
            )

        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0

    def test_address_required_unless_pickup(self, app, customer, make_product, put_in_cart, db_session):
        put_in_cart(customer, make_product("Eggs", price="4.00", stock=5), 1)

        with pytest.raises(ValidationError, match="Delivery address is required"):
            order_service.place_order(customer.id, CheckoutRequest(delivery_method="normal"))

        assert db_session.query(Order).count() == 0

    def test_pickup_uses_placeholder_address_and_no_fee(self, app, customer, make_product, put_in_cart):
        put_in_cart(customer, make_product("Eggs", price="4.00", stock=5), 2)

        placed = order_service.place_order(customer.id, CheckoutRequest(delivery_method="pickup"))

        assert placed.order.delivery_address == PICKUP_ADDRESS
        assert placed.order.delivery_fee == Decimal("0.00")
        assert placed.order.total == Decimal("8.00")

    def test_unknown_method_charged_and_stored_as_normal(self, app, customer, make_product, put_in_cart):
        put_in_cart(customer, make_product("Rice", price="12.90", stock=5), 1)

        placed = order_service.place_order(
            customer.id,
            CheckoutRequest(delivery_method="hovercraft", delivery_address="2 Side St"),
        )

        assert placed.order.delivery_method == "normal"
        assert placed.order.total == Decimal("22.90")

    def test_stock_guard_miss_still_places_order(self, app, customer, make_product, put_in_cart, db_session):
        scarce = make_product("Saffron", price="9.99", stock=1)
        put_in_cart(customer, scarce, 3)

        placed = order_service.place_order(
            customer.id,
            CheckoutRequest(delivery_method="normal", delivery_address="1 Main St"),
        )

        assert placed.warnings == [STOCK_WARNING]
        assert db_session.query(Order).count() == 1
        db_session.expire_all()
        assert db_session.get(Product, scarce.id).stock == 1
        assert db_session.query(CartItem).filter_by(user_id=customer.id).count() == 0

    def test_empty_cart_is_reported_before_missing_address(self, app, customer, db_session):
        with pytest.raises(EmptyCartError):
            order_service.place_order(customer.id, CheckoutRequest(delivery_method="normal"))

    def test_failed_write_leaves_no_rows_and_keeps_cart(
        self, app, customer, make_product, put_in_cart, db_session, monkeypatch
    ):
        milk = make_product("Milk", price="3.50", stock=10)
        put_in_cart(customer, milk, 2)

        def failing_commit():
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(db.session, "commit", failing_commit)

        with pytest.raises(OrderCreationFailed):
            order_service.place_order(customer.id, CheckoutRequest(delivery_method="pickup"))

        monkeypatch.undo()
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        line = db_session.query(CartItem).filter_by(user_id=customer.id).one()
        assert line.quantity == 2
        assert db_session.get(Product, milk.id).stock == 10

    def test_cart_clear_failure_keeps_order(
        self, app, customer, make_product, put_in_cart, db_session, monkeypatch
    ):
        milk = make_product("Milk", price="3.50", stock=10)
        put_in_cart(customer, milk, 2)

        def failing_clear(user_id, **kwargs):
            raise SQLAlchemyError("database is locked")

        monkeypatch.setattr(cart_service, "clear", failing_clear)

        placed = order_service.place_order(customer.id, CheckoutRequest(delivery_method="pickup"))

        monkeypatch.undo()
        assert placed.warnings == []
        assert db_session.query(Order).count() == 1
        assert db_session.query(CartItem).filter_by(user_id=customer.id).count() == 1
        db_session.expire_all()
        assert db_session.get(Product, milk.id).stock == 8


# =============================================================================
# HTTP: /api/checkout and /api/orders
# =============================================================================


class TestCheckoutRoutes:

    def test_checkout_summary_lists_fees(self, client, customer, customer_headers, make_product, put_in_cart):
        put_in_cart(customer, make_product("Milk", price="3.50", stock=5), 2)

        resp = client.get("/api/checkout", headers=customer_headers)

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["subtotal"] == "7.00"
        assert data["delivery_options"] == {"pickup": "0.00", "normal": "10.00", "express": "15.00"}
        assert data["default_address"] == customer.address

    def test_checkout_summary_with_empty_cart_redirects(self, client, customer_headers):
        resp = client.get("/api/checkout", headers=customer_headers)

        assert resp.status_code == 400
        assert resp.get_json()["redirect"] == "/api/cart"

    def test_post_checkout_ignores_client_totals(self, client, customer, customer_headers, make_product, put_in_cart):
        put_in_cart(customer, make_product("Bread", price="10.00", stock=5), 2)
        put_in_cart(customer, make_product("Milk", price="5.00", stock=5), 1)

        resp = client.post(
            "/api/checkout",
            json={"delivery_method": "express", "delivery_address": "1 Main St", "total": "0.01"},
            headers=customer_headers,
        )

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["order"]["total"] == "40.00"
        assert data["order"]["items_total"] == "25.00"
        assert data["redirect"] == f"/api/orders/{data['order']['id']}"
        assert "warnings" not in data

    def test_post_checkout_empty_cart(self, client, customer_headers):
        resp = client.post(
            "/api/checkout",
            json={"delivery_method": "normal", "delivery_address": "1 Main St"},
            headers=customer_headers,
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Your cart is empty."

    def test_customer_sees_only_own_orders(self, client, customer, customer_headers, make_user, make_product, put_in_cart):
        other = make_user("oscar")
        put_in_cart(other, make_product("Jam", price="2.00", stock=5), 1)
        theirs = order_service.place_order(other.id, CheckoutRequest(delivery_method="pickup")).order

        put_in_cart(customer, make_product("Tea", price="2.00", stock=5), 1)
        mine = order_service.place_order(customer.id, CheckoutRequest(delivery_method="pickup")).order

        listing = client.get("/api/orders", headers=customer_headers).get_json()
        assert [o["id"] for o in listing["orders"]] == [mine.id]

        assert client.get(f"/api/orders/{mine.id}", headers=customer_headers).status_code == 200
        assert client.get(f"/api/orders/{theirs.id}", headers=customer_headers).status_code == 404
        assert client.get(f"/api/orders/{theirs.id}/invoice", headers=customer_headers).status_code == 404

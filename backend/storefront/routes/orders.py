# Overview: Flask API routes for checkout and customer orders; parses input and returns JSON responses.

import io

from flask import Blueprint, request, jsonify, g, current_app, send_file

from ..services import cart_service, order_service, invoice_service
from ..schemas import CheckoutRequest
from ..money import format_money
from ..validation import StorefrontError, NotFoundError
from ..decorators import require_auth


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")
orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")

CHECKOUT_PATH = "/api/checkout"
CART_PATH = "/api/cart"


def invoice_response(order, customer):
    pdf = invoice_service.render_invoice(order, customer)
    return send_file(
        io.BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=invoice_service.invoice_filename(order),
    )


@checkout_bp.get("")
@require_auth
def checkout_summary():
    """Cart summary plus delivery options; the saved address is the default."""
    cart = cart_service.list_cart(g.current_user.id)
    if not cart["items"]:
        return jsonify({"error": "Your cart is empty.", "redirect": CART_PATH}), 400

    return jsonify({
        **cart,
        "delivery_options": {
            method: format_money(fee) for method, fee in order_service.DELIVERY_FEES.items()
        },
        "default_delivery_method": order_service.DEFAULT_DELIVERY_METHOD,
        "default_address": g.current_user.address,
    }), 200


@checkout_bp.post("")
@require_auth
def place_order():
    """
    Request body:
    - delivery_method: pickup | normal | express (anything else is normal)
    - delivery_address: str (required unless pickup)

    Totals are always computed server-side from the stored cart.
    """
    try:
        req = CheckoutRequest.from_payload(request.get_json(silent=True))
        placed = order_service.place_order(g.current_user.id, req)
    except order_service.EmptyCartError as e:
        return jsonify({"error": str(e), "redirect": CART_PATH}), e.status_code
    except StorefrontError as e:
        return jsonify({"error": str(e), "redirect": CHECKOUT_PATH}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500

    order = placed.order
    body = {
        "order": order.to_dict(include_items=True),
        "message": "Order placed successfully.",
        "redirect": f"/api/orders/{order.id}",
    }
    if placed.warnings:
        body["warnings"] = placed.warnings
    return jsonify(body), 201


@orders_bp.get("")
@require_auth
def my_orders():
    orders = order_service.list_user_orders(g.current_user.id)
    return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)}), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def my_order_detail(order_id: int):
    try:
        order = order_service.get_order_for_user(order_id, g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e), "redirect": "/api/orders"}), 404
    return jsonify({"order": order.to_dict(include_items=True)}), 200


@orders_bp.get("/<int:order_id>/invoice")
@require_auth
def my_order_invoice(order_id: int):
    try:
        order = order_service.get_order_for_user(order_id, g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return invoice_response(order, g.current_user)

# Overview: Flask API routes for cart operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import cart_service
from ..schemas import CartQuantityRequest
from ..validation import StorefrontError
from ..decorators import require_auth, optional_auth, current_user_id


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")

CART_PATH = "/api/cart"


@cart_bp.get("")
@optional_auth
def view_cart():
    """Anonymous callers get an empty cart."""
    return jsonify(cart_service.list_cart(current_user_id())), 200


@cart_bp.post("/items/<int:product_id>")
@require_auth
def add_item(product_id: int):
    """
    Add to cart.

    Request body:
    - quantity: int (optional, default 1; anything non-numeric or < 1 counts as 1)
    """
    try:
        req = CartQuantityRequest.from_payload(request.get_json(silent=True))
        line, product = cart_service.add(g.current_user.id, product_id, req.quantity)
    except StorefrontError as e:
        return jsonify({"error": str(e), **e.details, "redirect": "/api/products"}), e.status_code

    return jsonify({
        "message": f"{product.name} added to cart.",
        "item": cart_service.line_to_dict(line),
        "cart_count": cart_service.cart_count(g.current_user.id),
    }), 200


@cart_bp.put("/items/<int:product_id>")
@require_auth
def update_item(product_id: int):
    try:
        req = CartQuantityRequest.from_payload(request.get_json(silent=True))
        cart_service.set_quantity(g.current_user.id, product_id, req.quantity)
    except StorefrontError as e:
        return jsonify({"error": str(e), **e.details, "redirect": CART_PATH}), e.status_code

    return jsonify({"message": "Cart updated.", **cart_service.list_cart(g.current_user.id)}), 200


@cart_bp.delete("/items/<int:product_id>")
@require_auth
def remove_item(product_id: int):
    if not cart_service.remove(g.current_user.id, product_id):
        return jsonify({"error": "Item not in cart"}), 404
    return jsonify({"message": "Item removed.", **cart_service.list_cart(g.current_user.id)}), 200


@cart_bp.delete("")
@require_auth
def clear_cart():
    cart_service.clear(g.current_user.id)
    return jsonify({"message": "Cart cleared.", **cart_service.list_cart(g.current_user.id)}), 200

# Overview: Flask API routes for the admin/logistics order queue; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import order_service
from ..models import ROLE_ADMIN, ROLE_LOGISTICS, ORDER_STATUSES
from ..schemas import OrderQuery, OrderUpdateRequest
from ..validation import StorefrontError, ValidationError, NotFoundError
from ..decorators import require_auth, require_role
from .orders import invoice_response


admin_orders_bp = Blueprint("admin_orders", __name__, url_prefix="/api/admin/orders")

QUEUE_PATH = "/api/admin/orders"


@admin_orders_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_LOGISTICS)
def list_orders():
    """
    Query params:
    - search: username, email, delivery address, or exact order id
    - status: one of ORDER_STATUSES
    - date_from / date_to: YYYY-MM-DD, inclusive
    - sort: id_desc (default), id_asc, total_desc, total_asc, date_desc, date_asc
    """
    query = OrderQuery.from_args(request.args)

    try:
        orders = order_service.list_orders(query)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "orders": [order_service.order_with_customer(o, include_items=False) for o in orders],
        "count": len(orders),
        "statuses": list(ORDER_STATUSES),
    }), 200


@admin_orders_bp.get("/<int:order_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_LOGISTICS)
def get_order(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e), "redirect": QUEUE_PATH}), 404
    return jsonify({"order": order_service.order_with_customer(order)}), 200


@admin_orders_bp.put("/<int:order_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_LOGISTICS)
def update_order(order_id: int):
    """
    Request body: delivery_address, delivery_fee, status.

    The total is recomputed from the stored lines plus the new fee.
    """
    try:
        req = OrderUpdateRequest.from_payload(request.get_json(silent=True))
        order = order_service.update_order(order_id, req)
    except StorefrontError as e:
        return jsonify({"error": str(e), "redirect": f"{QUEUE_PATH}/{order_id}"}), e.status_code

    return jsonify({
        "order": order_service.order_with_customer(order),
        "message": "Order updated successfully.",
    }), 200


@admin_orders_bp.get("/<int:order_id>/invoice")
@require_auth
@require_role(ROLE_ADMIN, ROLE_LOGISTICS)
def order_invoice(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return invoice_response(order, order.user)

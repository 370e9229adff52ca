# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Catalog routes.

- /api/products: shopping view, open to anonymous callers for the listing
- /api/admin/inventory + /api/admin/products: admin-only inventory and CRUD
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service, cart_service
from ..models import Product, ROLE_ADMIN
from ..schemas import ProductQuery
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, optional_auth, require_role, current_user_id

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "stock", "image"},
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
admin_products_bp = Blueprint("admin_products", __name__, url_prefix="/api/admin")


@products_bp.get("")
@optional_auth
def list_products():
    """
    Shopping listing.

    Query params:
    - search: substring of the product name
    - stock: low | medium | high
    - sort: name_asc (default), name_desc, stock_asc, stock_desc, price_asc, price_desc
    """
    query = ProductQuery.from_args(request.args)
    result = catalog_service.list_products(query)
    result["cart_count"] = cart_service.cart_count(current_user_id())
    result["filters"] = {"search": query.search, "stock": query.stock, "sort": query.sort}
    return jsonify(result), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"product": product.to_dict()}), 200


# =============================================================================
# ADMIN INVENTORY
# =============================================================================

@admin_products_bp.get("/inventory")
@require_auth
@require_role(ROLE_ADMIN)
def inventory():
    """Same filters and sorts as the shopping listing."""
    query = ProductQuery.from_args(request.args)
    result = catalog_service.list_products(query)
    result["filters"] = {"search": query.search, "stock": query.stock, "sort": query.sort}
    return jsonify(result), 200


@admin_products_bp.post("/products")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = catalog_service.create_product(patch=patch)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"product": created, "message": "Product added"}), 201


@admin_products_bp.put("/products/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = catalog_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"product": updated, "message": "Product updated"}), 200


@admin_products_bp.delete("/products/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: int):
    try:
        catalog_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"ok": True, "message": "Product deleted"}), 200

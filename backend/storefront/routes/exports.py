from flask import Blueprint, Response, jsonify, request

from storefront.decorators import require_auth, require_role
from storefront.models import ROLE_ADMIN, ROLE_LOGISTICS
from storefront.schemas import ProductQuery, OrderQuery, UserQuery
from storefront.services import export_service
from storefront.validation import ValidationError


exports_bp = Blueprint("exports", __name__, url_prefix="/api/admin/export")


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@exports_bp.get("/products")
@require_auth
@require_role(ROLE_ADMIN)
def export_products():
    body = export_service.export_products(ProductQuery.from_args(request.args))
    return _csv_response(body, "products.csv")


@exports_bp.get("/orders")
@require_auth
@require_role(ROLE_ADMIN, ROLE_LOGISTICS)
def export_orders():
    try:
        body = export_service.export_orders(OrderQuery.from_args(request.args))
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    return _csv_response(body, "orders.csv")


@exports_bp.get("/users")
@require_auth
@require_role(ROLE_ADMIN)
def export_users():
    body = export_service.export_users(UserQuery.from_args(request.args))
    return _csv_response(body, "users.csv")

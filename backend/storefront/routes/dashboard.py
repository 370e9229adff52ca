from flask import Blueprint, jsonify, g, current_app

from storefront.decorators import require_auth, require_role
from storefront.models import ROLE_ADMIN, ROLE_LOGISTICS
from storefront.services import reporting_service


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")


@dashboard_bp.get("/dashboard")
@require_auth
def user_dashboard():
    return jsonify(reporting_service.user_dashboard(g.current_user.id)), 200


@dashboard_bp.get("/admin/dashboard")
@require_auth
@require_role(ROLE_ADMIN, ROLE_LOGISTICS)
def admin_dashboard():
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    return jsonify(reporting_service.admin_dashboard(low_stock_threshold=threshold)), 200

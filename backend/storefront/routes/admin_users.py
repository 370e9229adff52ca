# Overview: Flask API routes for admin user management; parses input and returns JSON responses.

# backend/storefront/routes/admin_users.py
"""
Admin routes for user management.

All endpoints require an authenticated admin. Edits and deletes that would
leave the store without an admin are refused with 409.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import user_admin_service
from ..models import ROLE_ADMIN, ROLES
from ..schemas import AdminUserRequest, UserQuery
from ..validation import StorefrontError, NotFoundError
from ..decorators import require_auth, require_role

admin_users_bp = Blueprint("admin_users", __name__, url_prefix="/api/admin/users")

USERS_PATH = "/api/admin/users"


@admin_users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_users():
    """
    Query params:
    - search: substring of username or email
    - role: user | admin | logistics
    - sort: id_desc (default), id_asc, name_asc, name_desc, email_asc, email_desc
    """
    users = user_admin_service.list_users(UserQuery.from_args(request.args))
    return jsonify({
        "users": [u.to_dict() for u in users],
        "count": len(users),
        "roles": list(ROLES),
    }), 200


@admin_users_bp.get("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_user(user_id: int):
    try:
        user = user_admin_service.get_user(user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e), "redirect": USERS_PATH}), 404
    return jsonify({"user": user.to_dict()}), 200


@admin_users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_user():
    """
    Request body:
    - username, email, password: str (required)
    - role: user | admin | logistics (default user)
    - address, contact: str (optional)
    """
    try:
        req = AdminUserRequest.from_payload(request.get_json(silent=True))
        user = user_admin_service.create(req)
    except StorefrontError as e:
        return jsonify({"error": str(e), "redirect": USERS_PATH}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Admin %s created user %s (%s)", g.current_user.id, user.id, user.role)
    return jsonify({"user": user.to_dict(), "message": "User created successfully."}), 201


@admin_users_bp.put("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_user(user_id: int):
    try:
        req = AdminUserRequest.from_payload(request.get_json(silent=True))
        user = user_admin_service.update(user_id, req)
    except StorefrontError as e:
        return jsonify({"error": str(e), "redirect": f"{USERS_PATH}/{user_id}"}), e.status_code

    return jsonify({"user": user.to_dict(), "message": "User updated successfully."}), 200


@admin_users_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_user(user_id: int):
    try:
        user_admin_service.delete(user_id)
    except StorefrontError as e:
        return jsonify({"error": str(e), "redirect": USERS_PATH}), e.status_code

    current_app.logger.info("Admin %s deleted user %s", g.current_user.id, user_id)
    return jsonify({"ok": True, "message": "User deleted successfully."}), 200

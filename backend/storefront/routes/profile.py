# Overview: Flask API routes for profile operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service, session_service
from ..schemas import ProfileUpdateRequest, PasswordChangeRequest
from ..validation import StorefrontError
from ..decorators import require_auth


profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")

PROFILE_PATH = "/api/profile"


@profile_bp.get("")
@require_auth
def get_profile():
    return jsonify({"user": g.current_user.to_dict()}), 200


@profile_bp.put("")
@require_auth
def update_profile():
    try:
        req = ProfileUpdateRequest.from_payload(request.get_json(silent=True))
        user = auth_service.update_profile(g.current_user.id, req)
    except StorefrontError as e:
        return jsonify({"error": str(e), "redirect": PROFILE_PATH}), e.status_code

    return jsonify({"user": user.to_dict(), "message": "Profile updated successfully."}), 200


@profile_bp.post("/password")
@require_auth
def change_password():
    """
    Request body: old_password, new_password, confirm_password.

    Every other session of the caller is revoked on success.
    """
    try:
        req = PasswordChangeRequest.from_payload(request.get_json(silent=True))
        auth_service.change_password(g.current_user.id, req)
    except StorefrontError as e:
        return jsonify({"error": str(e), "redirect": PROFILE_PATH}), e.status_code

    revoked = session_service.revoke_all_user_sessions(
        g.current_user.id,
        reason="Password changed",
        keep_session_id=g.session_context.session.id,
    )
    current_app.logger.info("User %s changed password; revoked %s sessions", g.current_user.id, revoked)

    return jsonify({"message": "Password changed successfully.", "sessions_revoked": revoked}), 200

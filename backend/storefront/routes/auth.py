# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes

- Self-registration creates customer accounts only
- Login issues a bearer session token and a role-based landing path
- Logout revokes the presented token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..schemas import RegistrationRequest, LoginRequest
from ..validation import StorefrontError
from ..decorators import require_auth, LOGIN_PATH


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

REGISTER_PATH = "/api/auth/register"


@auth_bp.post("/register")
def register_route():
    """
    Create a customer account.

    On failure the submitted form (without the password) is echoed back so the
    client can re-display it.
    """
    payload = request.get_json(silent=True)
    try:
        req = RegistrationRequest.from_payload(payload)
    except StorefrontError as e:
        body = {"error": str(e), "redirect": REGISTER_PATH}
        if isinstance(payload, dict):
            body["form"] = RegistrationRequest.from_payload({**payload, "password": None}).form_data()
        return jsonify(body), e.status_code

    try:
        user = auth_service.register(req)
    except StorefrontError as e:
        return jsonify({
            "error": str(e),
            "form": req.form_data(),
            "redirect": REGISTER_PATH,
        }), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Registered user %s", user.id)
    return jsonify({
        "user": user.to_dict(),
        "message": "Registration successful. Please log in.",
        "redirect": LOGIN_PATH,
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        req = LoginRequest.from_payload(request.get_json(silent=True))
        user = auth_service.authenticate(req)

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "redirect": auth_service.landing_path(user),
            "message": "Login successful",
        }), 200

    except StorefrontError as e:
        return jsonify({"error": str(e), "redirect": LOGIN_PATH}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1]
    session_service.revoke_session(token, reason="User logout")
    return jsonify({"message": "Logged out", "redirect": LOGIN_PATH}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "session": g.session_context.session.to_dict(),
        "redirect": auth_service.landing_path(g.current_user),
    }), 200

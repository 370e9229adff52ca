# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service

LOGIN_PATH = "/api/auth/login"
HOME_PATH = "/api/products"


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def _set_context(context) -> None:
    g.current_user = context.user
    g.session_context = context


def require_auth(f):
    """
    Require a valid session token.

    Sets on Flask g:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 (with a redirect hint to the login route) if the header is
    missing or the token is invalid, expired or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()

        if not token:
            return jsonify({"error": "Please log in to view this page.", "redirect": LOGIN_PATH}), 401

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token", "redirect": LOGIN_PATH}), 401

        _set_context(context)
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Resolve the caller if a valid token is present; anonymous otherwise."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        context = session_service.validate_session(token) if token else None

        g.current_user = None
        g.session_context = None
        if context:
            _set_context(context)

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Require the authenticated user's role to be one of `roles`.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if getattr(g, "current_user", None) is None:
                return jsonify({"error": "Please log in to view this page.", "redirect": LOGIN_PATH}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Access denied.",
                    "required_roles": list(roles),
                    "redirect": HOME_PATH,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def current_user_id() -> int | None:
    user = getattr(g, "current_user", None)
    return user.id if user else None

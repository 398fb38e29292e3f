# Overview: Request decorators that establish the caller and tenant context.

from functools import wraps

from flask import g, jsonify, request

from .constants import ROLE_ADMIN
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'operator_id')


def require_auth(f):
    """
    Require a bearer session and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.operator_id: The operator captured by the session
    - g.session_context: The full SessionContext object

    Returns 401 for a missing header or an invalid/expired/revoked token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.operator_id = context.operator_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Allow only the listed roles. Superusers always pass."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not user.is_superuser and user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": sorted(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_superuser(f):
    """Platform-level actions such as onboarding operators."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.current_user.is_superuser:
            return jsonify({"error": "Superuser access required"}), 403
        return f(*args, **kwargs)

    return decorated_function


def is_admin() -> bool:
    return _is_authenticated() and (g.current_user.is_superuser or g.current_user.role == ROLE_ADMIN)

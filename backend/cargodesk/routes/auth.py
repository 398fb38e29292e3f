# Overview: Login, logout and current-session endpoints.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import auth_service, session_service
from .helpers import json_body, server_error_response


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Exchange mobile + password for a bearer token.

    The token goes in the Authorization header for every protected route.
    """
    try:
        data = json_body()
        mobile = data.get("mobile")
        password = data.get("password")

        if not all([mobile, password]):
            return jsonify({"error": "mobile and password required"}), 400

        user = auth_service.authenticate(str(mobile), password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "operator": user.operator.to_dict(),
            "token": token,
            "expires_at": session.expires_at.isoformat() + "Z",
        }), 200
    except Exception:
        return server_error_response("Login failed")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization").split(" ", 1)[1]
    session_service.revoke_session(token, reason="User logout")
    return jsonify({"message": "Logged out successfully"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "operator": user.operator.to_dict(),
    }), 200

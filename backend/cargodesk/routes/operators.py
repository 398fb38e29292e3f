# Overview: Operator (tenant) onboarding and profile routes.

"""
Operator routes.

Onboarding and cross-tenant listing are platform actions (superuser only).
Operator admins may read and adjust their own operator via /me.
"""
from flask import Blueprint, g, jsonify, request

from ..constants import ROLE_ADMIN
from ..decorators import require_auth, require_role, require_superuser
from ..errors import CargoError
from ..services import operator_service
from ..services.concurrency import commit_or_rollback
from .helpers import cargo_error_response, json_body, page_args, server_error_response

operators_bp = Blueprint("operators", __name__, url_prefix="/api/operators")


@operators_bp.post("")
@require_auth
@require_superuser
def create_operator_route():
    try:
        operator = operator_service.create_operator(json_body())
        commit_or_rollback()
        return jsonify(operator.to_dict()), 201
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to create operator")


@operators_bp.get("")
@require_auth
@require_superuser
def search_operators_route():
    page, limit = page_args()
    try:
        return jsonify(operator_service.search_operators(request.args.get("q"), page=page, limit=limit)), 200
    except CargoError as e:
        return cargo_error_response(e)


@operators_bp.get("/me")
@require_auth
def my_operator_route():
    try:
        return jsonify(operator_service.get_operator(g.operator_id).to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)


@operators_bp.put("/me")
@require_auth
@require_role(ROLE_ADMIN)
def update_my_operator_route():
    """Admins may change contact details and payment methods, not status."""
    data = json_body()
    if "status" in data:
        return jsonify({"error": "Field not allowed: status", "code": "VALIDATION_ERROR"}), 400
    try:
        operator = operator_service.update_operator(g.operator_id, data)
        commit_or_rollback()
        return jsonify(operator.to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to update operator")


@operators_bp.put("/<int:operator_id>")
@require_auth
@require_superuser
def update_operator_route(operator_id: int):
    try:
        operator = operator_service.update_operator(operator_id, json_body())
        commit_or_rollback()
        return jsonify(operator.to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to update operator")

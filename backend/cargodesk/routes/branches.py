# Overview: Operator-scoped branch routes.

from flask import Blueprint, g, jsonify, request

from ..constants import ROLE_ADMIN, ROLE_MANAGER
from ..decorators import require_auth, require_role
from ..errors import CargoError
from ..services import branch_service
from ..services.concurrency import commit_or_rollback
from .helpers import cargo_error_response, json_body, page_args, server_error_response

branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.get("")
@require_auth
def list_branches_route():
    page, limit = page_args()
    try:
        result = branch_service.list_branches(
            operator_id=g.operator_id,
            query=request.args.get("q"),
            status=request.args.get("status"),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@branches_bp.get("/<int:branch_id>")
@require_auth
def get_branch_route(branch_id: int):
    try:
        return jsonify(branch_service.get_branch(branch_id, operator_id=g.operator_id).to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)


@branches_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def create_branch_route():
    try:
        branch = branch_service.create_branch(json_body(), operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify(branch.to_dict()), 201
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to create branch")


@branches_bp.put("/<int:branch_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_branch_route(branch_id: int):
    try:
        branch = branch_service.update_branch(branch_id, json_body(), operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify(branch.to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to update branch")


@branches_bp.delete("/<int:branch_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_branch_route(branch_id: int):
    try:
        branch_service.delete_branch(branch_id, operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify({"ok": True}), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to delete branch")

# Overview: Operator-scoped vehicle routes.

from flask import Blueprint, g, jsonify, request

from ..constants import ROLE_ADMIN, ROLE_MANAGER
from ..decorators import require_auth, require_role
from ..errors import CargoError
from ..services import vehicle_service
from ..services.concurrency import commit_or_rollback
from .helpers import cargo_error_response, json_body, page_args, server_error_response

vehicles_bp = Blueprint("vehicles", __name__, url_prefix="/api/vehicles")


@vehicles_bp.get("")
@require_auth
def list_vehicles_route():
    page, limit = page_args()
    try:
        result = vehicle_service.list_vehicles(
            operator_id=g.operator_id,
            query=request.args.get("q"),
            status=request.args.get("status"),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@vehicles_bp.get("/<int:vehicle_id>")
@require_auth
def get_vehicle_route(vehicle_id: int):
    try:
        return jsonify(vehicle_service.get_vehicle(vehicle_id, operator_id=g.operator_id).to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)


@vehicles_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def create_vehicle_route():
    try:
        vehicle = vehicle_service.create_vehicle(json_body(), operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify(vehicle.to_dict()), 201
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to create vehicle")


@vehicles_bp.put("/<int:vehicle_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_vehicle_route(vehicle_id: int):
    try:
        vehicle = vehicle_service.update_vehicle(vehicle_id, json_body(), operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify(vehicle.to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to update vehicle")


@vehicles_bp.delete("/<int:vehicle_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_vehicle_route(vehicle_id: int):
    try:
        vehicle_service.delete_vehicle(vehicle_id, operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify({"ok": True}), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to delete vehicle")

# Overview: Staff account routes and the caller's cargo balance views.

"""
User routes.

MULTI-TENANT: every lookup is scoped to g.operator_id.
cargo_balance is read-only here; it moves only through bookings and
approved cash transfers.
"""
from flask import Blueprint, g, jsonify, request

from ..constants import ROLE_ADMIN, ROLE_MANAGER
from ..decorators import require_auth, require_role
from ..errors import CargoError, ValidationError
from ..services import auth_service, ledger_service
from ..services.concurrency import commit_or_rollback
from ..time_utils import parse_iso_date, to_iso_date, today
from ..validation import money
from .helpers import cargo_error_response, json_body, page_args, server_error_response

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _date_arg(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a YYYY-MM-DD date")


@users_bp.get("")
@require_auth
def list_users_route():
    page, limit = page_args()
    try:
        result = auth_service.list_users(
            operator_id=g.operator_id,
            query=request.args.get("q"),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@users_bp.get("/me")
@require_auth
def me_route():
    return jsonify(g.current_user.to_dict()), 200


@users_bp.get("/me/cargo-balance")
@require_auth
def my_cargo_balance_route():
    """
    Current running balance plus the Paid booking total for one day.

    Query params:
    - date: YYYY-MM-DD (default today)
    """
    try:
        on_date = _date_arg("date") or today()
        user = g.current_user
        balance = ledger_service.get_balance(user.id, operator_id=g.operator_id)
        daily = ledger_service.daily_balance(user.id, on_date, operator_id=g.operator_id)
        return jsonify({
            "user_id": user.id,
            "cargo_balance": money(balance),
            "date": to_iso_date(on_date),
            "daily_balance": money(daily),
        }), 200
    except CargoError as e:
        return cargo_error_response(e)


@users_bp.get("/cargo-balance/summary")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def cargo_balance_summary_route():
    try:
        rows = ledger_service.cargo_balance_summary(
            g.operator_id,
            start=_date_arg("start"),
            end=_date_arg("end"),
        )
        return jsonify({"data": rows}), 200
    except CargoError as e:
        return cargo_error_response(e)


@users_bp.get("/<int:user_id>")
@require_auth
def get_user_route(user_id: int):
    try:
        return jsonify(auth_service.get_user(user_id, operator_id=g.operator_id).to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)


@users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_user_route():
    try:
        user = auth_service.create_user_from_payload(json_body(), operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify(user.to_dict()), 201
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to create user")


@users_bp.put("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_user_route(user_id: int):
    try:
        user = auth_service.update_user(user_id, json_body(), operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify(user.to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to update user")

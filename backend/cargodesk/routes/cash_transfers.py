# Overview: Cash transfer routes: requests, edits and the approval workflow.

"""
Cash transfer routes.

Anyone may request a transfer out of their own balance; admins and managers
may open one on behalf of another user. A decision (approve/reject) is made
by the receiving user or by an admin/manager.
"""
from flask import Blueprint, g, jsonify, request

from ..constants import ROLE_ADMIN, ROLE_MANAGER, TRANSFER_APPROVED, TRANSFER_REJECTED
from ..decorators import require_auth
from ..errors import CargoError, ValidationError
from ..services import cash_transfer_service
from ..services.concurrency import commit_or_rollback
from ..validation import to_int_id
from .helpers import cargo_error_response, json_body, page_args, server_error_response

cash_transfers_bp = Blueprint("cash_transfers", __name__, url_prefix="/api/cash-transfers")


def _is_supervisor() -> bool:
    user = g.current_user
    return user.is_superuser or user.role in (ROLE_ADMIN, ROLE_MANAGER)


def _forbidden():
    return jsonify({"error": "Permission denied"}), 403


def _can_see(transfer) -> bool:
    user_id = g.current_user.id
    return _is_supervisor() or user_id in (transfer.from_user_id, transfer.to_user_id)


def _can_decide(transfer) -> bool:
    return _is_supervisor() or g.current_user.id == transfer.to_user_id


@cash_transfers_bp.post("")
@require_auth
def create_transfer_route():
    data = json_body()
    try:
        from_user_id = to_int_id(data.get("from_user_id", g.current_user.id), "from_user_id")
        if from_user_id != g.current_user.id and not _is_supervisor():
            return _forbidden()
        to_user_id = data.get("to_user_id")
        transfer = cash_transfer_service.create_transfer(
            operator_id=g.operator_id,
            from_user_id=from_user_id,
            to_user_id=to_int_id(to_user_id, "to_user_id") if to_user_id is not None else None,
            amount=data.get("amount"),
            description=data.get("description"),
            created_by_user_id=g.current_user.id,
        )
        commit_or_rollback()
        return jsonify({"message": "Cash transfer created", "data": transfer.to_dict()}), 201
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to create cash transfer")


@cash_transfers_bp.get("")
@require_auth
def list_transfers_route():
    """
    Query params:
    - status: Pending, Approved, Rejected or NonPending
    - user_id: admins/managers only; others always see their own transfers
    - page, limit
    """
    page, limit = page_args()
    if _is_supervisor():
        user_id = request.args.get("user_id", type=int)
    else:
        user_id = g.current_user.id
    try:
        result = cash_transfer_service.list_transfers(
            operator_id=g.operator_id,
            user_id=user_id,
            status=request.args.get("status"),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@cash_transfers_bp.get("/<int:transfer_id>")
@require_auth
def get_transfer_route(transfer_id: int):
    try:
        transfer = cash_transfer_service.get_transfer(transfer_id, operator_id=g.operator_id)
    except CargoError as e:
        return cargo_error_response(e)
    if not _can_see(transfer):
        return _forbidden()
    return jsonify(transfer.to_dict()), 200


@cash_transfers_bp.put("/<int:transfer_id>")
@require_auth
def update_transfer_route(transfer_id: int):
    try:
        transfer = cash_transfer_service.get_transfer(transfer_id, operator_id=g.operator_id)
        if not _is_supervisor() and g.current_user.id != transfer.from_user_id:
            return _forbidden()
        data = json_body()
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        data = dict(data)
        for key in ("from_user_id", "to_user_id"):
            if data.get(key) is not None:
                data[key] = to_int_id(data[key], key)
        # Only supervisors may move the debit onto another user's balance
        if "from_user_id" in data and data["from_user_id"] != g.current_user.id and not _is_supervisor():
            return _forbidden()
        if "status" in data and not _can_decide(transfer):
            return _forbidden()
        transfer = cash_transfer_service.update_transfer(
            transfer_id, data, operator_id=g.operator_id, user_id=g.current_user.id,
        )
        commit_or_rollback()
        return jsonify({"message": "Transfer updated", "data": transfer.to_dict()}), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to update cash transfer")


@cash_transfers_bp.delete("/<int:transfer_id>")
@require_auth
def delete_transfer_route(transfer_id: int):
    try:
        transfer = cash_transfer_service.get_transfer(transfer_id, operator_id=g.operator_id)
        if not _is_supervisor() and g.current_user.id != transfer.from_user_id:
            return _forbidden()
        cash_transfer_service.delete_transfer(transfer_id, operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify({"message": "Cash transfer deleted"}), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to delete cash transfer")


def _decide(transfer_id: int, status: str):
    try:
        transfer = cash_transfer_service.get_transfer(transfer_id, operator_id=g.operator_id)
        if not _can_decide(transfer):
            return _forbidden()
        transfer = cash_transfer_service.set_transfer_status(
            transfer_id, status, operator_id=g.operator_id, user_id=g.current_user.id,
        )
        commit_or_rollback()
        return jsonify({"message": f"Cash transfer {status.lower()}", "data": transfer.to_dict()}), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to update cash transfer status")


@cash_transfers_bp.put("/status/<int:transfer_id>")
@require_auth
def update_transfer_status_route(transfer_id: int):
    """Body: {"status": "Approved" | "Rejected"}."""
    return _decide(transfer_id, json_body().get("status"))


@cash_transfers_bp.post("/<int:transfer_id>/approve")
@require_auth
def approve_transfer_route(transfer_id: int):
    return _decide(transfer_id, TRANSFER_APPROVED)


@cash_transfers_bp.post("/<int:transfer_id>/reject")
@require_auth
def reject_transfer_route(transfer_id: int):
    return _decide(transfer_id, TRANSFER_REJECTED)

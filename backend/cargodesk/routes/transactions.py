# Overview: Read-only view of the cargo balance ledger.

from flask import Blueprint, g, jsonify, request

from ..constants import ROLE_ADMIN, ROLE_MANAGER
from ..decorators import require_auth
from ..errors import CargoError
from ..services import ledger_service
from .helpers import cargo_error_response, page_args

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    Newest-first ledger entries.

    Staff see their own entries; admins and managers may pass user_id or
    omit it to see the whole operator.
    """
    page, limit = page_args()
    user = g.current_user
    if user.is_superuser or user.role in (ROLE_ADMIN, ROLE_MANAGER):
        user_id = request.args.get("user_id", type=int)
    else:
        user_id = user.id
    try:
        result = ledger_service.list_transactions(
            g.operator_id, page=page, limit=limit, user_id=user_id,
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)

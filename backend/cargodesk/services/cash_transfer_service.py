# Overview: Cash transfer approval workflow between operator staff.

"""
Cash Transfer Workflow

STATE MACHINE:
    Pending -> Approved   (ledger_service.apply_transfer runs, exactly once)
    Pending -> Rejected   (no balance effect)

Approved and Rejected are terminal. Any mutation of a settled transfer
(status change, edit, delete) raises AlreadyProcessedError. A failed
approval (e.g. InsufficientBalanceError) leaves the transfer Pending.
"""
from __future__ import annotations

import logging

from ..constants import (
    TRANSFER_APPROVED,
    TRANSFER_FILTER_NON_PENDING,
    TRANSFER_PENDING,
    TRANSFER_REJECTED,
    TRANSFER_STATUSES,
)
from ..errors import AlreadyProcessedError, InvalidStatusError, NotFoundError, ValidationError
from ..extensions import db
from ..models import CashTransfer, User
from ..time_utils import utcnow
from ..validation import parse_pagination, to_positive_amount, total_pages
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import apply_transfer

logger = logging.getLogger(__name__)


TRANSFER_TRANSITIONS = {
    TRANSFER_PENDING: {TRANSFER_APPROVED, TRANSFER_REJECTED},
    TRANSFER_APPROVED: set(),
    TRANSFER_REJECTED: set(),
}

EDITABLE_FIELDS = {"amount", "description", "from_user_id", "to_user_id"}


def validate_status(status: str) -> None:
    if not isinstance(status, str) or status not in TRANSFER_STATUSES:
        raise InvalidStatusError(
            f"Invalid status value '{status}'. Must be one of: {', '.join(sorted(TRANSFER_STATUSES))}"
        )


def validate_transition(current: str, target: str) -> None:
    """
    Reject anything but Pending -> Approved / Pending -> Rejected.

    Raises:
        InvalidStatusError: unknown status, or a target not reachable from Pending
        AlreadyProcessedError: current status is terminal
    """
    validate_status(current)
    validate_status(target)
    if current != TRANSFER_PENDING:
        raise AlreadyProcessedError(f"Cash transfer already processed (status {current})")
    if target not in TRANSFER_TRANSITIONS[current]:
        raise InvalidStatusError(f"Cannot move cash transfer from {current} to {target}")


def _require_operator_user(user_id: int, operator_id: int, label: str) -> User:
    user = db.session.query(User).filter_by(id=user_id, operator_id=operator_id).first()
    if not user:
        raise NotFoundError(f"{label} {user_id} not found")
    return user


def _load_for_update(transfer_id: int, operator_id: int) -> CashTransfer:
    transfer = lock_for_update(
        db.session.query(CashTransfer).filter_by(id=transfer_id, operator_id=operator_id)
    ).first()
    if not transfer:
        raise NotFoundError(f"Cash transfer {transfer_id} not found")
    return transfer


def create_transfer(
    *,
    operator_id: int,
    from_user_id: int,
    to_user_id: int,
    amount,
    description: str | None = None,
    created_by_user_id: int | None = None,
) -> CashTransfer:
    """Open a Pending transfer. Balances are untouched until approval."""
    if from_user_id is None or to_user_id is None:
        raise ValidationError("from_user_id and to_user_id are required")
    amount = to_positive_amount(amount)
    if from_user_id == to_user_id:
        raise ValidationError("Cannot transfer to the same user")

    _require_operator_user(from_user_id, operator_id, "FromUser")
    _require_operator_user(to_user_id, operator_id, "ToUser")

    transfer = CashTransfer(
        operator_id=operator_id,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        amount=amount,
        description=description,
        status=TRANSFER_PENDING,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(transfer)
    db.session.flush()

    logger.info(
        "Cash transfer %s created: from=%s to=%s amount=%s",
        transfer.id, from_user_id, to_user_id, amount,
    )
    return transfer


def get_transfer(transfer_id: int, *, operator_id: int) -> CashTransfer:
    transfer = db.session.query(CashTransfer).filter_by(id=transfer_id, operator_id=operator_id).first()
    if not transfer:
        raise NotFoundError(f"Cash transfer {transfer_id} not found")
    return transfer


def _settle(transfer: CashTransfer, status: str, *, operator_id: int, user_id: int | None) -> CashTransfer:
    """Move a locked Pending transfer to status, applying the ledger change on approval."""
    validate_transition(transfer.status, status)
    if status == TRANSFER_APPROVED:
        apply_transfer(
            transfer.from_user_id,
            transfer.to_user_id,
            transfer.amount,
            operator_id=operator_id,
            cash_transfer=transfer,
        )

    transfer.status = status
    transfer.decided_by_user_id = user_id
    transfer.decided_at = utcnow()
    db.session.flush()

    logger.info("Cash transfer %s %s by user %s", transfer.id, status.lower(), user_id)
    return transfer


def approve_transfer(transfer_id: int, *, operator_id: int, user_id: int | None = None) -> CashTransfer:
    """
    Pending -> Approved. Applies the balance change, then flips the status.

    Raises:
        NotFoundError, AlreadyProcessedError, InsufficientBalanceError
    """
    def _op():
        transfer = _load_for_update(transfer_id, operator_id)
        return _settle(transfer, TRANSFER_APPROVED, operator_id=operator_id, user_id=user_id)

    return run_with_retry(_op)


def reject_transfer(transfer_id: int, *, operator_id: int, user_id: int | None = None) -> CashTransfer:
    """Pending -> Rejected. No balance effect."""
    def _op():
        transfer = _load_for_update(transfer_id, operator_id)
        return _settle(transfer, TRANSFER_REJECTED, operator_id=operator_id, user_id=user_id)

    return run_with_retry(_op)


def set_transfer_status(
    transfer_id: int,
    status: str,
    *,
    operator_id: int,
    user_id: int | None = None,
) -> CashTransfer:
    """Dispatch a requested status to approve/reject after validation."""
    validate_status(status)
    if status == TRANSFER_APPROVED:
        return approve_transfer(transfer_id, operator_id=operator_id, user_id=user_id)
    if status == TRANSFER_REJECTED:
        return reject_transfer(transfer_id, operator_id=operator_id, user_id=user_id)

    # Pending -> Pending: report the settled state if there is one
    transfer = get_transfer(transfer_id, operator_id=operator_id)
    validate_transition(transfer.status, status)
    return transfer


def update_transfer(
    transfer_id: int,
    data: dict,
    *,
    operator_id: int,
    user_id: int | None = None,
) -> CashTransfer:
    """
    Edit a Pending transfer. A "status" key is routed through the workflow
    after the field edits are applied, in the same unit of work.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = set(data) - EDITABLE_FIELDS - {"status"}
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    status = data.get("status")
    if status is not None:
        validate_status(status)

    def _op():
        transfer = _load_for_update(transfer_id, operator_id)
        if transfer.status != TRANSFER_PENDING:
            raise AlreadyProcessedError(f"Cash transfer already processed (status {transfer.status})")

        if "amount" in data:
            transfer.amount = to_positive_amount(data["amount"])
        if "description" in data:
            transfer.description = data["description"]
        if "from_user_id" in data:
            transfer.from_user_id = _require_operator_user(data["from_user_id"], operator_id, "FromUser").id
        if "to_user_id" in data:
            transfer.to_user_id = _require_operator_user(data["to_user_id"], operator_id, "ToUser").id
        if transfer.from_user_id == transfer.to_user_id:
            raise ValidationError("Cannot transfer to the same user")

        db.session.flush()
        if status is not None and status != TRANSFER_PENDING:
            _settle(transfer, status, operator_id=operator_id, user_id=user_id)
        return transfer

    return run_with_retry(_op)


def delete_transfer(transfer_id: int, *, operator_id: int) -> None:
    """Delete a Pending transfer. Settled transfers are permanent."""
    def _op():
        transfer = _load_for_update(transfer_id, operator_id)
        if transfer.status != TRANSFER_PENDING:
            raise AlreadyProcessedError(f"Cash transfer already processed (status {transfer.status})")
        db.session.delete(transfer)
        db.session.flush()

    run_with_retry(_op)
    logger.info("Cash transfer %s deleted", transfer_id)


def list_transfers(
    *,
    operator_id: int,
    user_id: int | None = None,
    status: str | None = None,
    page=1,
    limit=10,
) -> dict:
    """
    Newest-first transfers of an operator.

    user_id narrows to transfers where the user is either side.
    status accepts Pending, Approved, Rejected or NonPending.
    """
    page, limit = parse_pagination(page, limit)

    query = db.session.query(CashTransfer).filter(CashTransfer.operator_id == operator_id)
    if user_id is not None:
        query = query.filter(
            db.or_(CashTransfer.from_user_id == user_id, CashTransfer.to_user_id == user_id)
        )

    if status:
        if status == TRANSFER_FILTER_NON_PENDING:
            query = query.filter(CashTransfer.status.in_([TRANSFER_APPROVED, TRANSFER_REJECTED]))
        else:
            validate_status(status)
            query = query.filter(CashTransfer.status == status)

    total = query.count()
    skip = (page - 1) * limit
    transfers = (
        query.order_by(CashTransfer.created_at.desc(), CashTransfer.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )

    data = []
    for index, transfer in enumerate(transfers):
        row = transfer.to_dict()
        row["s_no"] = skip + index + 1
        data.append(row)

    return {
        "page": page,
        "limit": limit,
        "total_pages": total_pages(total, limit),
        "total_records": total,
        "data": data,
    }

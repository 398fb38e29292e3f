# Overview: Cargo balance ledger: booking charges, transfers and balance views.

"""
Cargo Balance Ledger

INVARIANTS:
- users.cargo_balance changes only through apply_booking_charge and
  apply_transfer. Nothing else writes it.
- Every balance change appends exactly one Transaction row in the same DB
  transaction; Transaction rows are never updated or deleted.
- apply_transfer validates existence and balance BEFORE touching either row,
  so a failed transfer leaves both balances untouched. The two writes are
  committed (or rolled back) together by the caller's session.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, update

from ..constants import LR_TYPE_PAID, LR_TYPE_TO_PAY, TRANSACTION_BOOKING, TRANSACTION_TRANSFER
from ..errors import InsufficientBalanceError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Booking, CashTransfer, Transaction, User
from ..time_utils import to_iso_date
from ..validation import money, parse_pagination, to_decimal, to_non_negative_amount, to_positive_amount, total_pages
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)


def get_balance(user_id: int, *, operator_id: int | None = None) -> Decimal:
    query = db.session.query(User.cargo_balance).filter(User.id == user_id)
    if operator_id is not None:
        query = query.filter(User.operator_id == operator_id)
    row = query.first()
    if row is None:
        raise NotFoundError(f"User {user_id} not found")
    return to_decimal(row[0] or 0, "cargo_balance")


def apply_booking_charge(
    user_id: int,
    amount,
    *,
    operator_id: int | None = None,
    booking: Booking | None = None,
    record: bool = True,
) -> Decimal:
    """
    Add a booking's charge to the collecting user's balance.

    NOT idempotent: call exactly once per booking payment event.
    The increment is a single relative UPDATE that also bumps the row's
    version_id, so a transfer holding a stale copy of the user cannot
    overwrite it. Returns the new balance.
    """
    amount = to_non_negative_amount(amount)

    stmt = update(User).where(User.id == user_id)
    if operator_id is not None:
        stmt = stmt.where(User.operator_id == operator_id)
    stmt = stmt.values(
        cargo_balance=User.cargo_balance + amount,
        version_id=User.version_id + 1,
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        raise NotFoundError(f"User {user_id} not found")

    new_balance = get_balance(user_id)

    if record:
        user = db.session.query(User).filter_by(id=user_id).first()
        description = None
        if booking is not None:
            description = (
                f"Cargo Booking : {booking.booking_code} by {user.full_name} "
                f"has been posted for amount of ₹{amount}"
            )
        txn = Transaction(
            operator_id=user.operator_id,
            user_id=user_id,
            type=TRANSACTION_BOOKING,
            amount=amount,
            balance_after=new_balance,
            booking_id=booking.id if booking is not None else None,
            description=description,
        )
        db.session.add(txn)
        db.session.flush()

    logger.info(
        "Booking charge applied: user=%s amount=%s new_balance=%s booking=%s",
        user_id, amount, new_balance, booking.booking_code if booking is not None else None,
    )
    return new_balance


def apply_transfer(
    from_user_id: int,
    to_user_id: int,
    amount,
    *,
    operator_id: int,
    cash_transfer: CashTransfer | None = None,
) -> Transaction:
    """
    Move amount from one user's balance to another's.

    Preconditions (checked before any write):
    - both users exist in operator_id        -> NotFoundError
    - from_user.cargo_balance >= amount      -> InsufficientBalanceError

    Effect: decrement source, increment destination, append one Transaction
    carrying the destination's new balance. Both rows are locked where the
    backend supports FOR UPDATE, and both writes are relative UPDATEs that
    bump version_id, so a charge landing between the read and the write is
    kept. The caller commits or rolls back the whole unit.
    """
    amount = to_positive_amount(amount)
    if from_user_id == to_user_id:
        raise ValidationError("Cannot transfer to the same user")

    users = lock_for_update(
        db.session.query(User).filter(
            User.operator_id == operator_id,
            User.id.in_([from_user_id, to_user_id]),
        ).order_by(User.id)
    ).all()
    by_id = {u.id: u for u in users}
    from_user = by_id.get(from_user_id)
    to_user = by_id.get(to_user_id)

    if not from_user or not to_user:
        raise NotFoundError("FromUser or ToUser not found")

    from_balance = to_decimal(from_user.cargo_balance or 0, "cargo_balance")
    if from_balance < amount:
        raise InsufficientBalanceError(
            f"Insufficient cargo balance for transfer: available {from_balance}, requested {amount}"
        )

    # Both writes are relative to the stored balance. The debit matches no
    # row if the stored balance has dropped below amount since the read.
    debit = db.session.execute(
        update(User)
        .where(
            User.id == from_user_id,
            User.operator_id == operator_id,
            User.cargo_balance >= amount,
        )
        .values(cargo_balance=User.cargo_balance - amount, version_id=User.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    if not debit.rowcount:
        raise InsufficientBalanceError(
            f"Insufficient cargo balance for transfer: requested {amount}"
        )
    db.session.execute(
        update(User)
        .where(User.id == to_user_id, User.operator_id == operator_id)
        .values(cargo_balance=User.cargo_balance + amount, version_id=User.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(from_user)
    db.session.refresh(to_user)

    txn = Transaction(
        operator_id=operator_id,
        user_id=to_user.id,
        type=TRANSACTION_TRANSFER,
        amount=amount,
        balance_after=to_user.cargo_balance,
        from_user_id=from_user.id,
        to_user_id=to_user.id,
        cash_transfer_id=cash_transfer.id if cash_transfer is not None else None,
        description=f"Cash Transfer of ₹{amount} from {from_user.full_name} to {to_user.full_name}",
    )
    db.session.add(txn)
    db.session.flush()

    logger.info(
        "Transfer applied: from=%s to=%s amount=%s from_balance=%s to_balance=%s",
        from_user.id, to_user.id, amount, from_user.cargo_balance, to_user.cargo_balance,
    )
    return txn


def daily_balance(user_id: int, on_date: date, *, operator_id: int | None = None) -> Decimal:
    """
    Sum of total_amount_charge over the user's Paid bookings dated on_date.

    Derived view, not a stored value. Returns Decimal("0.00") when the user
    booked nothing that day.
    """
    query = db.session.query(func.sum(Booking.total_amount_charge)).filter(
        Booking.booked_by_user_id == user_id,
        Booking.booking_date == on_date,
        Booking.lr_type == LR_TYPE_PAID,
    )
    if operator_id is not None:
        query = query.filter(Booking.operator_id == operator_id)
    total = query.scalar()
    return to_decimal(total or 0, "balance")


def cargo_balance_summary(
    operator_id: int,
    *,
    start: date | None = None,
    end: date | None = None,
) -> list[dict]:
    """Per booking_date totals over the operator's bookings (inclusive range)."""
    paid = func.sum(case((Booking.lr_type == LR_TYPE_PAID, Booking.total_amount_charge), else_=0))
    to_pay = func.sum(case((Booking.lr_type == LR_TYPE_TO_PAY, Booking.total_amount_charge), else_=0))

    query = db.session.query(
        Booking.booking_date.label("booking_date"),
        func.sum(Booking.total_amount_charge).label("total_balance"),
        paid.label("paid_balance"),
        to_pay.label("to_pay_balance"),
        func.count(Booking.id).label("booking_count"),
    ).filter(Booking.operator_id == operator_id)

    if start:
        query = query.filter(Booking.booking_date >= start)
    if end:
        query = query.filter(Booking.booking_date <= end)

    rows = query.group_by(Booking.booking_date).order_by(Booking.booking_date.asc()).all()
    return [
        {
            "date": to_iso_date(row.booking_date),
            "total_balance": money(to_decimal(row.total_balance or 0)),
            "paid_balance": money(to_decimal(row.paid_balance or 0)),
            "to_pay_balance": money(to_decimal(row.to_pay_balance or 0)),
            "booking_count": int(row.booking_count or 0),
        }
        for row in rows
    ]


def list_transactions(
    operator_id: int,
    *,
    page=1,
    limit=10,
    user_id: int | None = None,
) -> dict:
    """Newest-first ledger for an operator, optionally narrowed to one user."""
    page, limit = parse_pagination(page, limit)

    query = db.session.query(Transaction).filter(Transaction.operator_id == operator_id)
    if user_id is not None:
        query = query.filter(Transaction.user_id == user_id)

    total = query.count()
    rows = (
        query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "page": page,
        "limit": limit,
        "total_records": total,
        "total_pages": total_pages(total, limit),
        "transactions": [t.to_dict() for t in rows],
    }

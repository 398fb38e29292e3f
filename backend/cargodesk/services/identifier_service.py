# Overview: Booking identifier formatting and per-operator sequence allocation.

"""
Booking identifiers.

FORMAT:
    {payment type code}-{YYYYMMDD}-{sequence, zero padded}
    P-20250609-0001      (default)
    P-OPR-20250609-0001  (with include_tenant_code)

Uniqueness comes entirely from the operator's booking_sequence, which is
advanced with one atomic UPDATE. A sequence value consumed by a booking that
later fails to save leaves a gap; numbers are never handed out twice.
"""

from __future__ import annotations

import logging
from datetime import date

from flask import current_app, has_app_context
from sqlalchemy import update

from ..constants import LR_TYPE_CODES
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Operator

logger = logging.getLogger(__name__)

DEFAULT_SEQUENCE_PAD = 4


def payment_type_code_for(lr_type: str) -> str:
    """Paid -> "P", ToPay -> "TP"."""
    try:
        return LR_TYPE_CODES[lr_type]
    except KeyError:
        raise ValidationError(
            f"Invalid lr_type '{lr_type}'. Must be one of: {', '.join(sorted(LR_TYPE_CODES))}"
        )


def format_booking_id(
    tenant_code: str,
    booking_date: date,
    sequence: int,
    payment_type_code: str,
    *,
    include_tenant_code: bool = False,
    pad: int = DEFAULT_SEQUENCE_PAD,
) -> str:
    """
    Render a booking identifier. Pure: no I/O, same input -> same output.

    Sequences wider than pad are rendered in full (10000 -> "10000").
    """
    if sequence < 1:
        raise ValidationError("sequence must be >= 1")
    parts = [payment_type_code]
    if include_tenant_code:
        parts.append(tenant_code)
    parts.append(booking_date.strftime("%Y%m%d"))
    parts.append(f"{sequence:0{pad}d}")
    return "-".join(parts)


def next_sequence(operator_id: int) -> int:
    """
    Atomically advance and return the operator's booking sequence.

    The increment is a single UPDATE statement so two concurrent bookings
    can never read the same value; the read afterwards happens inside the
    same DB transaction and therefore sees this transaction's write.
    """
    stmt = (
        update(Operator)
        .where(Operator.id == operator_id)
        .values(booking_sequence=Operator.booking_sequence + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise NotFoundError(f"Operator {operator_id} not found")

    value = (
        db.session.query(Operator.booking_sequence)
        .filter(Operator.id == operator_id)
        .scalar()
    )
    logger.info("Allocated booking sequence %s for operator %s", value, operator_id)
    return int(value)


def create_booking_sequence(
    operator_id: int,
    *,
    lr_type: str,
    booking_date: date,
) -> tuple[int, str]:
    """
    Allocate the next sequence for an operator and format its booking id.

    Returns (sequence, booking_code).
    """
    operator = db.session.query(Operator).filter_by(id=operator_id).first()
    if not operator:
        raise NotFoundError(f"Operator {operator_id} not found")

    code = payment_type_code_for(lr_type)
    sequence = next_sequence(operator_id)

    include_code = False
    pad = DEFAULT_SEQUENCE_PAD
    if has_app_context():
        include_code = current_app.config.get("BOOKING_ID_INCLUDE_OPERATOR_CODE", False)
        pad = current_app.config.get("BOOKING_SEQUENCE_PAD", DEFAULT_SEQUENCE_PAD)

    booking_code = format_booking_id(
        operator.code,
        booking_date,
        sequence,
        code,
        include_tenant_code=include_code,
        pad=pad,
    )
    return sequence, booking_code

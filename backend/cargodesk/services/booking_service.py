# Overview: Booking creation, lifecycle transitions and booking queries.

"""
Booking Service

LIFECYCLE:
    Booked -> InTransit   (load: vehicle required)
    InTransit -> Arrived  (unload)
    Arrived -> Delivered  (deliver)
    Booked | InTransit | Arrived -> Cancelled

LEDGER:
- Paid bookings: total_amount_charge is applied to the booking user's
  cargo balance when the booking is created.
- ToPay bookings: the charge is collected on delivery and applied to the
  delivering user's cargo balance.
Cancellation does not reverse an applied charge.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from ..constants import (
    ACTIVE,
    BOOKING_ARRIVED,
    BOOKING_BOOKED,
    BOOKING_CANCELLED,
    BOOKING_DELIVERED,
    BOOKING_IN_TRANSIT,
    BOOKING_STATUSES,
    BOOKING_TERMINAL_STATUSES,
    LR_TYPE_PAID,
    LR_TYPE_TO_PAY,
    LR_TYPES,
    VEHICLE_MAINTENANCE,
)
from ..errors import ConflictError, InvalidStatusError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Booking, Branch, Operator, Transaction, Vehicle
from ..time_utils import today, utcnow
from ..validation import ModelValidationPolicy, parse_pagination, total_pages, validate_payload
from .concurrency import lock_for_update, run_with_retry
from .identifier_service import create_booking_sequence
from .ledger_service import apply_booking_charge

logger = logging.getLogger(__name__)


BOOKING_TRANSITIONS = {
    BOOKING_BOOKED: {BOOKING_IN_TRANSIT, BOOKING_CANCELLED},
    BOOKING_IN_TRANSIT: {BOOKING_ARRIVED, BOOKING_CANCELLED},
    BOOKING_ARRIVED: {BOOKING_DELIVERED, BOOKING_CANCELLED},
    BOOKING_DELIVERED: set(),
    BOOKING_CANCELLED: set(),
}

CHARGE_FIELDS = ("freight_charge", "loading_charge", "unloading_charge", "other_charge")

_DETAIL_FIELDS = {
    "payment_type",
    "sender_name", "sender_phone", "sender_email", "sender_address",
    "receiver_name", "receiver_phone", "receiver_email", "receiver_address",
    "from_branch_id", "to_branch_id",
    "dispatch_date", "arrival_date",
    "package_description", "weight", "quantity", "value_of_goods", "dimensions",
}

BOOKING_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=_DETAIL_FIELDS | {"lr_type"} | set(CHARGE_FIELDS),
    required_on_create={
        "lr_type",
        "sender_phone",
        "receiver_phone",
        "from_branch_id",
        "to_branch_id",
        "weight",
        "quantity",
        "value_of_goods",
    },
)

# lr_type and charges are fixed once the ledger has seen the booking
BOOKING_UPDATE_POLICY = ModelValidationPolicy(writable_fields=set(_DETAIL_FIELDS))

SEARCH_FIELDS = ("booking_code", "sender_name", "receiver_name")


def validate_booking_transition(current: str, target: str) -> None:
    """
    Raises:
        InvalidStatusError: unknown status or illegal move
    """
    if current not in BOOKING_STATUSES or target not in BOOKING_STATUSES:
        raise InvalidStatusError(
            f"Invalid booking status. Must be one of: {', '.join(sorted(BOOKING_STATUSES))}"
        )
    if target not in BOOKING_TRANSITIONS[current]:
        raise InvalidStatusError(f"Cannot move booking from {current} to {target}")


def _drop_blank_payment_type(data):
    # "" means "not recorded yet"; the column itself is non-nullable
    if isinstance(data, dict) and data.get("payment_type") == "":
        data = {k: v for k, v in data.items() if k != "payment_type"}
    return data


def compute_total(patch: dict) -> Decimal:
    return sum((Decimal(patch.get(f) or 0) for f in CHARGE_FIELDS), Decimal("0.00"))


def _validate_branches(operator_id: int, from_branch_id: int, to_branch_id: int) -> None:
    if from_branch_id == to_branch_id:
        raise ValidationError("Origin and destination branches cannot be the same")

    from_branch = db.session.query(Branch).filter_by(
        id=from_branch_id, operator_id=operator_id, status=ACTIVE
    ).first()
    if not from_branch:
        raise ValidationError("Invalid or inactive origin branch")

    to_branch = db.session.query(Branch).filter_by(
        id=to_branch_id, operator_id=operator_id, status=ACTIVE
    ).first()
    if not to_branch:
        raise ValidationError("Invalid or inactive destination branch")


def _validate_payment_type(operator: Operator, payment_type: str | None) -> None:
    if not payment_type:
        return
    allowed = set(operator.payment_methods or [])
    if payment_type not in allowed:
        raise ValidationError(
            f"Payment type '{payment_type}' is not enabled for this operator"
        )


def create_booking(
    data: dict,
    *,
    user_id: int,
    operator_id: int,
    booking_date: date | None = None,
) -> Booking:
    """
    Create a booking and mint its identifier.

    Args:
        data: client payload (validated against BOOKING_CREATE_POLICY)
        user_id: booking user; receives the charge for Paid bookings
        operator_id: tenant
        booking_date: defaults to today (UTC)

    Returns:
        Booking: flushed, not committed

    Raises:
        ValidationError: bad payload, branches or payment type
        NotFoundError: operator or user missing
    """
    patch = validate_payload(
        model=Booking,
        payload=_drop_blank_payment_type(data),
        policy=BOOKING_CREATE_POLICY,
        partial=False,
    )

    if patch["lr_type"] not in LR_TYPES:
        raise ValidationError(f"lr_type must be one of: {', '.join(sorted(LR_TYPES))}")
    if patch["quantity"] < 1:
        raise ValidationError("quantity must be >= 1")

    for field in CHARGE_FIELDS:
        patch.setdefault(field, Decimal("0.00"))
    patch.setdefault("payment_type", "")
    patch["total_amount_charge"] = compute_total(patch)

    booking_date = booking_date or today()

    def _op():
        operator = db.session.query(Operator).filter_by(id=operator_id).first()
        if not operator:
            raise NotFoundError(f"Operator {operator_id} not found")
        if not operator.is_active:
            raise ValidationError("Operator is inactive")

        _validate_branches(operator_id, patch["from_branch_id"], patch["to_branch_id"])
        _validate_payment_type(operator, patch["payment_type"])

        sequence, booking_code = create_booking_sequence(
            operator_id,
            lr_type=patch["lr_type"],
            booking_date=booking_date,
        )

        booking = Booking(
            operator_id=operator_id,
            booking_code=booking_code,
            booking_sequence=sequence,
            booking_date=booking_date,
            status=BOOKING_BOOKED,
            booked_by_user_id=user_id,
            **patch,
        )
        db.session.add(booking)
        db.session.flush()

        if booking.lr_type == LR_TYPE_PAID:
            apply_booking_charge(
                user_id,
                booking.total_amount_charge,
                operator_id=operator_id,
                booking=booking,
            )

        logger.info(
            "Booking %s created by user %s (operator %s, total %s)",
            booking.booking_code, user_id, operator_id, booking.total_amount_charge,
        )
        return booking

    return run_with_retry(_op)


def get_booking(booking_id: int, *, operator_id: int) -> Booking:
    booking = db.session.query(Booking).filter_by(id=booking_id, operator_id=operator_id).first()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def _load_for_update(booking_id: int, operator_id: int) -> Booking:
    booking = lock_for_update(
        db.session.query(Booking).filter_by(id=booking_id, operator_id=operator_id)
    ).first()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def update_booking(booking_id: int, data: dict, *, operator_id: int) -> Booking:
    """Edit shipment details. Delivered and Cancelled bookings are read-only."""
    patch = validate_payload(
        model=Booking,
        payload=_drop_blank_payment_type(data),
        policy=BOOKING_UPDATE_POLICY,
        partial=True,
    )
    if "quantity" in patch and patch["quantity"] < 1:
        raise ValidationError("quantity must be >= 1")

    def _op():
        booking = _load_for_update(booking_id, operator_id)
        if booking.status in BOOKING_TERMINAL_STATUSES:
            raise InvalidStatusError(f"Cannot edit a {booking.status} booking")

        if "from_branch_id" in patch or "to_branch_id" in patch:
            _validate_branches(
                operator_id,
                patch.get("from_branch_id", booking.from_branch_id),
                patch.get("to_branch_id", booking.to_branch_id),
            )
        if "payment_type" in patch:
            _validate_payment_type(booking.operator, patch["payment_type"])

        for key, value in patch.items():
            setattr(booking, key, value)
        db.session.flush()
        return booking

    return run_with_retry(_op)


def delete_booking(booking_id: int, *, operator_id: int) -> None:
    """
    Delete a Booked booking that has no ledger entries.

    Paid bookings already carry a Booking transaction; cancel those instead.
    """
    def _op():
        booking = _load_for_update(booking_id, operator_id)
        if booking.status != BOOKING_BOOKED:
            raise InvalidStatusError(f"Cannot delete a {booking.status} booking")

        has_ledger = db.session.query(Transaction.id).filter_by(booking_id=booking.id).first()
        if has_ledger:
            raise ConflictError("Booking has ledger entries; cancel it instead")

        db.session.delete(booking)
        db.session.flush()

    run_with_retry(_op)
    logger.info("Booking %s deleted (operator %s)", booking_id, operator_id)


# =============================================================================
# LIFECYCLE
# =============================================================================

def assign_vehicle(booking_id: int, vehicle_id: int, *, operator_id: int) -> Booking:
    """Attach a vehicle to a Booked booking. Vehicles under maintenance are refused."""
    def _op():
        booking = _load_for_update(booking_id, operator_id)
        if booking.status != BOOKING_BOOKED:
            raise InvalidStatusError(f"Cannot assign a vehicle to a {booking.status} booking")

        vehicle = db.session.query(Vehicle).filter_by(id=vehicle_id, operator_id=operator_id).first()
        if not vehicle:
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        if vehicle.status == VEHICLE_MAINTENANCE:
            raise ValidationError(f"Vehicle {vehicle.vehicle_number} is under maintenance")

        booking.assigned_vehicle_id = vehicle.id
        db.session.flush()
        return booking

    return run_with_retry(_op)


def load_booking(booking_id: int, *, operator_id: int, user_id: int) -> Booking:
    """Booked -> InTransit."""
    def _op():
        booking = _load_for_update(booking_id, operator_id)
        validate_booking_transition(booking.status, BOOKING_IN_TRANSIT)
        if booking.assigned_vehicle_id is None:
            raise ValidationError("Assign a vehicle before loading")

        booking.status = BOOKING_IN_TRANSIT
        booking.loaded_by_user_id = user_id
        booking.loaded_at = utcnow()
        if booking.dispatch_date is None:
            booking.dispatch_date = today()
        db.session.flush()
        return booking

    booking = run_with_retry(_op)
    logger.info("Booking %s loaded by user %s", booking.booking_code, user_id)
    return booking


def unload_booking(booking_id: int, *, operator_id: int, user_id: int) -> Booking:
    """InTransit -> Arrived."""
    def _op():
        booking = _load_for_update(booking_id, operator_id)
        validate_booking_transition(booking.status, BOOKING_ARRIVED)

        booking.status = BOOKING_ARRIVED
        booking.unloaded_by_user_id = user_id
        booking.unloaded_at = utcnow()
        if booking.arrival_date is None:
            booking.arrival_date = today()
        db.session.flush()
        return booking

    booking = run_with_retry(_op)
    logger.info("Booking %s unloaded by user %s", booking.booking_code, user_id)
    return booking


def deliver_booking(booking_id: int, *, operator_id: int, user_id: int) -> Booking:
    """Arrived -> Delivered. ToPay charges land on the delivering user."""
    def _op():
        booking = _load_for_update(booking_id, operator_id)
        validate_booking_transition(booking.status, BOOKING_DELIVERED)

        booking.status = BOOKING_DELIVERED
        booking.delivered_by_user_id = user_id
        booking.delivered_at = utcnow()
        db.session.flush()

        if booking.lr_type == LR_TYPE_TO_PAY:
            apply_booking_charge(
                user_id,
                booking.total_amount_charge,
                operator_id=operator_id,
                booking=booking,
            )
        return booking

    booking = run_with_retry(_op)
    logger.info("Booking %s delivered by user %s", booking.booking_code, user_id)
    return booking


def cancel_booking(
    booking_id: int,
    *,
    operator_id: int,
    user_id: int,
    reason: str | None = None,
) -> Booking:
    def _op():
        booking = _load_for_update(booking_id, operator_id)
        validate_booking_transition(booking.status, BOOKING_CANCELLED)

        booking.status = BOOKING_CANCELLED
        booking.cancelled_by_user_id = user_id
        booking.cancelled_at = utcnow()
        booking.cancellation_reason = reason
        db.session.flush()
        return booking

    booking = run_with_retry(_op)
    logger.info("Booking %s cancelled by user %s", booking.booking_code, user_id)
    return booking


# =============================================================================
# QUERIES
# =============================================================================

def _apply_text_search(query, text: str | None):
    text = (text or "").strip()
    if not text:
        return query
    pattern = f"%{text}%"
    return query.filter(
        db.or_(*(getattr(Booking, field).ilike(pattern) for field in SEARCH_FIELDS))
    )


def _paginate(query, page, limit) -> dict:
    page, limit = parse_pagination(page, limit)
    total = query.count()
    rows = (
        query.order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "page": page,
        "limit": limit,
        "total_records": total,
        "total_pages": total_pages(total, limit),
        "count": len(rows),
        "bookings": [b.to_dict() for b in rows],
    }


def search_bookings(
    *,
    operator_id: int,
    query: str | None = None,
    status: str | None = None,
    page=1,
    limit=10,
) -> dict:
    """Case-insensitive match on booking code, sender or receiver name."""
    q = db.session.query(Booking).filter(Booking.operator_id == operator_id)
    q = _apply_text_search(q, query)

    status = (status or "").strip()
    if status:
        if status not in BOOKING_STATUSES:
            raise InvalidStatusError(f"Invalid booking status '{status}'")
        q = q.filter(Booking.status == status)

    return _paginate(q, page, limit)


def list_unassigned(*, operator_id: int, query: str | None = None, page=1, limit=10) -> dict:
    """Booked bookings still waiting for a vehicle."""
    q = db.session.query(Booking).filter(
        Booking.operator_id == operator_id,
        Booking.status == BOOKING_BOOKED,
        Booking.assigned_vehicle_id.is_(None),
    )
    return _paginate(_apply_text_search(q, query), page, limit)


def list_by_status(
    status: str,
    *,
    operator_id: int,
    query: str | None = None,
    page=1,
    limit=10,
) -> dict:
    if status not in BOOKING_STATUSES:
        raise InvalidStatusError(f"Invalid booking status '{status}'")
    q = db.session.query(Booking).filter(
        Booking.operator_id == operator_id,
        Booking.status == status,
    )
    return _paginate(_apply_text_search(q, query), page, limit)

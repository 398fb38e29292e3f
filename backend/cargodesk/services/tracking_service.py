# Overview: Shipment tracking by booking code and by customer phone number.

"""
Shipment tracking.

MULTI-TENANT: booking codes are unique per operator only, so every lookup
is made within operator_id.

The tracking timeline is built from the lifecycle timestamps and actors
stored on the booking, oldest event first.
"""
from __future__ import annotations

import logging

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Booking, User
from ..time_utils import to_iso_date, to_utc_z
from ..validation import money

logger = logging.getLogger(__name__)


def _names(user_ids) -> dict[int, str]:
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}
    return dict(db.session.query(User.id, User.full_name).filter(User.id.in_(ids)).all())


def track_booking(booking_code: str, *, operator_id: int) -> dict:
    """
    Timeline of one booking.

    Returns booking_code, booking_date, status, total_amount_charge,
    receiver_name and a "tracking" list of {event, at, info}.

    Raises:
        ValidationError: blank booking_code
        NotFoundError: no such booking for this operator
    """
    code = (booking_code or "").strip()
    if not code:
        raise ValidationError("booking_code is required")

    booking = db.session.query(Booking).filter_by(operator_id=operator_id, booking_code=code).first()
    if not booking:
        raise NotFoundError(f"Booking {code} not found")

    names = _names([
        booking.booked_by_user_id,
        booking.loaded_by_user_id,
        booking.unloaded_by_user_id,
        booking.delivered_by_user_id,
        booking.cancelled_by_user_id,
    ])
    origin = booking.from_branch.name if booking.from_branch else "Unknown"
    destination = booking.to_branch.name if booking.to_branch else "Unknown"
    vehicle = booking.assigned_vehicle.vehicle_number if booking.assigned_vehicle else "N/A"

    def actor(user_id):
        return names.get(user_id, "Unknown")

    tracking = [{
        "event": "Booked",
        "at": to_utc_z(booking.created_at),
        "info": f"booked by {actor(booking.booked_by_user_id)} at {origin}",
    }]
    if booking.loaded_at:
        tracking.append({
            "event": "Loaded",
            "at": to_utc_z(booking.loaded_at),
            "info": f"loaded by {actor(booking.loaded_by_user_id)} at {origin} to vehicle {vehicle}",
        })
    if booking.unloaded_at:
        tracking.append({
            "event": "Unloaded",
            "at": to_utc_z(booking.unloaded_at),
            "info": f"unloaded by {actor(booking.unloaded_by_user_id)} at {destination}",
        })
    if booking.delivered_at:
        tracking.append({
            "event": "Delivered",
            "at": to_utc_z(booking.delivered_at),
            "info": f"delivered by {actor(booking.delivered_by_user_id)} at {destination}",
        })
    if booking.cancelled_at:
        tracking.append({
            "event": "Cancelled",
            "at": to_utc_z(booking.cancelled_at),
            "info": f"cancelled by {actor(booking.cancelled_by_user_id)}",
        })

    logger.info("Tracking lookup for booking %s (operator %s)", code, operator_id)
    return {
        "booking_code": booking.booking_code,
        "booking_date": to_iso_date(booking.booking_date),
        "status": booking.status,
        "total_amount_charge": money(booking.total_amount_charge),
        "receiver_name": booking.receiver_name or "",
        "tracking": tracking,
    }


def bookings_by_phone(phone: str, *, operator_id: int) -> list[dict]:
    """Newest-first bookings where phone is the sender's or the receiver's number."""
    phone = (phone or "").strip()
    if not phone:
        raise ValidationError("phone is required")

    bookings = (
        db.session.query(Booking)
        .filter(
            Booking.operator_id == operator_id,
            db.or_(Booking.sender_phone == phone, Booking.receiver_phone == phone),
        )
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )
    return [
        {
            "booking_code": b.booking_code,
            "booking_date": to_iso_date(b.booking_date),
            "sender_name": b.sender_name or "",
            "receiver_name": b.receiver_name or "",
            "status": b.status,
        }
        for b in bookings
    ]

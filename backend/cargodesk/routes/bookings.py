# Overview: Booking routes: creation, edits, lifecycle actions and searches.

"""
Booking routes.

MULTI-TENANT: every booking is looked up within g.operator_id; a booking of
another operator is reported as not found.

Lifecycle actions (load/unload/deliver/cancel) record g.current_user as the
actor. Delivering a ToPay booking credits the delivering user's balance.

Tracking (by booking code or customer phone) is operator-scoped as well.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..errors import CargoError, ValidationError
from ..services import booking_service, tracking_service
from ..services.concurrency import commit_or_rollback
from .helpers import cargo_error_response, json_body, page_args, server_error_response

bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


@bookings_bp.post("")
@require_auth
def create_booking_route():
    try:
        booking = booking_service.create_booking(
            json_body(),
            user_id=g.current_user.id,
            operator_id=g.operator_id,
        )
        commit_or_rollback()
        return jsonify(booking.to_dict()), 201
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to create booking")


@bookings_bp.get("")
@require_auth
def search_bookings_route():
    """
    Query params:
    - q: matches booking code, sender or receiver name
    - status: Booked, InTransit, Arrived, Delivered or Cancelled
    - page, limit
    """
    page, limit = page_args()
    try:
        result = booking_service.search_bookings(
            operator_id=g.operator_id,
            query=request.args.get("q"),
            status=request.args.get("status"),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@bookings_bp.get("/unassigned")
@require_auth
def unassigned_bookings_route():
    page, limit = page_args()
    try:
        result = booking_service.list_unassigned(
            operator_id=g.operator_id,
            query=request.args.get("q"),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@bookings_bp.get("/status/<status>")
@require_auth
def bookings_by_status_route(status: str):
    page, limit = page_args()
    try:
        result = booking_service.list_by_status(
            status,
            operator_id=g.operator_id,
            query=request.args.get("q"),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@bookings_bp.get("/track/<booking_code>")
@require_auth
def track_booking_route(booking_code: str):
    try:
        return jsonify(tracking_service.track_booking(booking_code, operator_id=g.operator_id)), 200
    except CargoError as e:
        return cargo_error_response(e)


@bookings_bp.get("/by-phone")
@require_auth
def bookings_by_phone_route():
    """Query params: phone (sender or receiver number)."""
    try:
        bookings = tracking_service.bookings_by_phone(request.args.get("phone"), operator_id=g.operator_id)
        return jsonify({"bookings": bookings}), 200
    except CargoError as e:
        return cargo_error_response(e)


@bookings_bp.get("/<int:booking_id>")
@require_auth
def get_booking_route(booking_id: int):
    try:
        return jsonify(booking_service.get_booking(booking_id, operator_id=g.operator_id).to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)


@bookings_bp.put("/<int:booking_id>")
@require_auth
def update_booking_route(booking_id: int):
    try:
        booking = booking_service.update_booking(booking_id, json_body(), operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify(booking.to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to update booking")


@bookings_bp.delete("/<int:booking_id>")
@require_auth
def delete_booking_route(booking_id: int):
    try:
        booking_service.delete_booking(booking_id, operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify({"message": "Booking deleted"}), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to delete booking")


@bookings_bp.post("/<int:booking_id>/assign-vehicle")
@require_auth
def assign_vehicle_route(booking_id: int):
    try:
        vehicle_id = json_body().get("vehicle_id")
        if not isinstance(vehicle_id, int) or isinstance(vehicle_id, bool):
            raise ValidationError("vehicle_id must be an integer")
        booking = booking_service.assign_vehicle(booking_id, vehicle_id, operator_id=g.operator_id)
        commit_or_rollback()
        return jsonify(booking.to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response("Failed to assign vehicle")


def _lifecycle(action, booking_id: int, message: str, **kwargs):
    try:
        booking = action(booking_id, operator_id=g.operator_id, user_id=g.current_user.id, **kwargs)
        commit_or_rollback()
        return jsonify(booking.to_dict()), 200
    except CargoError as e:
        return cargo_error_response(e)
    except Exception:
        return server_error_response(message)


@bookings_bp.post("/<int:booking_id>/load")
@require_auth
def load_booking_route(booking_id: int):
    return _lifecycle(booking_service.load_booking, booking_id, "Failed to load booking")


@bookings_bp.post("/<int:booking_id>/unload")
@require_auth
def unload_booking_route(booking_id: int):
    return _lifecycle(booking_service.unload_booking, booking_id, "Failed to unload booking")


@bookings_bp.post("/<int:booking_id>/deliver")
@require_auth
def deliver_booking_route(booking_id: int):
    return _lifecycle(booking_service.deliver_booking, booking_id, "Failed to deliver booking")


@bookings_bp.post("/<int:booking_id>/cancel")
@require_auth
def cancel_booking_route(booking_id: int):
    reason = json_body().get("reason")
    return _lifecycle(booking_service.cancel_booking, booking_id, "Failed to cancel booking", reason=reason)

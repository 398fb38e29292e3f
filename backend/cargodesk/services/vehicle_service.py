# Overview: Operator-scoped vehicle registry.

from __future__ import annotations

from ..constants import VEHICLE_AVAILABLE, VEHICLE_STATUSES
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Booking, Vehicle
from ..validation import ModelValidationPolicy, parse_pagination, total_pages, validate_payload

VEHICLE_POLICY = ModelValidationPolicy(
    writable_fields={
        "vehicle_number", "vehicle_type", "capacity", "driver", "current_location", "status",
    },
    required_on_create={"vehicle_number", "vehicle_type", "capacity", "driver", "current_location"},
)


def _check_patch(operator_id: int, patch: dict, exclude_id: int | None = None) -> None:
    if "status" in patch and patch["status"] not in VEHICLE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(VEHICLE_STATUSES))}")
    if "vehicle_number" in patch:
        patch["vehicle_number"] = patch["vehicle_number"].upper()
        q = db.session.query(Vehicle.id).filter(
            Vehicle.operator_id == operator_id,
            Vehicle.vehicle_number == patch["vehicle_number"],
        )
        if exclude_id is not None:
            q = q.filter(Vehicle.id != exclude_id)
        if q.first():
            raise ConflictError(f"Vehicle {patch['vehicle_number']} already exists")


def create_vehicle(data: dict, *, operator_id: int) -> Vehicle:
    patch = validate_payload(model=Vehicle, payload=data, policy=VEHICLE_POLICY, partial=False)
    _check_patch(operator_id, patch)
    patch.setdefault("status", VEHICLE_AVAILABLE)

    vehicle = Vehicle(operator_id=operator_id, **patch)
    db.session.add(vehicle)
    db.session.flush()
    return vehicle


def get_vehicle(vehicle_id: int, *, operator_id: int) -> Vehicle:
    vehicle = db.session.query(Vehicle).filter_by(id=vehicle_id, operator_id=operator_id).first()
    if not vehicle:
        raise NotFoundError(f"Vehicle {vehicle_id} not found")
    return vehicle


def update_vehicle(vehicle_id: int, data: dict, *, operator_id: int) -> Vehicle:
    patch = validate_payload(model=Vehicle, payload=data, policy=VEHICLE_POLICY, partial=True)
    vehicle = get_vehicle(vehicle_id, operator_id=operator_id)
    _check_patch(operator_id, patch, exclude_id=vehicle.id)

    for key, value in patch.items():
        setattr(vehicle, key, value)
    db.session.flush()
    return vehicle


def delete_vehicle(vehicle_id: int, *, operator_id: int) -> None:
    vehicle = get_vehicle(vehicle_id, operator_id=operator_id)
    if db.session.query(Booking.id).filter(Booking.assigned_vehicle_id == vehicle.id).first():
        raise ConflictError("Vehicle is assigned to bookings")
    db.session.delete(vehicle)
    db.session.flush()


def list_vehicles(
    *,
    operator_id: int,
    query: str | None = None,
    status: str | None = None,
    page=1,
    limit=10,
) -> dict:
    page, limit = parse_pagination(page, limit)

    q = db.session.query(Vehicle).filter(Vehicle.operator_id == operator_id)
    text = (query or "").strip()
    if text:
        pattern = f"%{text}%"
        q = q.filter(db.or_(Vehicle.vehicle_number.ilike(pattern), Vehicle.driver.ilike(pattern)))
    if status:
        q = q.filter(Vehicle.status == status)

    total = q.count()
    rows = q.order_by(Vehicle.vehicle_number.asc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "page": page,
        "limit": limit,
        "total_records": total,
        "total_pages": total_pages(total, limit),
        "data": [v.to_dict() for v in rows],
    }

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from ..validation import money


class Booking(db.Model):
    """
    Shipment record.

    booking_code is minted from the operator's booking_sequence at creation
    (e.g. P-20250609-0001) and is unique per operator.

    LIFECYCLE (enforced by booking_service.validate_booking_transition):
        Booked -> InTransit -> Arrived -> Delivered
        Booked | InTransit | Arrived -> Cancelled
    """
    __tablename__ = "bookings"
    __table_args__ = (
        db.UniqueConstraint("operator_id", "booking_code", name="uq_bookings_operator_code"),
        db.Index("ix_bookings_operator_date", "operator_id", "booking_date"),
        db.Index("ix_bookings_operator_status", "operator_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("operators.id"), nullable=False, index=True)

    booking_code = db.Column(db.String(40), nullable=False)
    booking_sequence = db.Column(db.Integer, nullable=False)
    booking_date = db.Column(db.Date, nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="Booked")
    lr_type = db.Column(db.String(8), nullable=False, default="Paid")
    payment_type = db.Column(db.String(8), nullable=False, default="")

    # Sender / receiver
    sender_name = db.Column(db.String(120), nullable=True)
    sender_phone = db.Column(db.String(32), nullable=False)
    sender_email = db.Column(db.String(255), nullable=True)
    sender_address = db.Column(db.String(500), nullable=True)
    receiver_name = db.Column(db.String(120), nullable=True)
    receiver_phone = db.Column(db.String(32), nullable=False)
    receiver_email = db.Column(db.String(255), nullable=True)
    receiver_address = db.Column(db.String(500), nullable=True)

    # Route
    from_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)
    to_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)
    assigned_vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=True, index=True)
    dispatch_date = db.Column(db.Date, nullable=True)
    arrival_date = db.Column(db.Date, nullable=True)

    # Package
    package_description = db.Column(db.String(500), nullable=True)
    weight = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    value_of_goods = db.Column(db.Numeric(12, 2), nullable=False)
    dimensions = db.Column(db.String(64), nullable=True)

    # Charges
    freight_charge = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    loading_charge = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    unloading_charge = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    other_charge = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount_charge = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Actors
    booked_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    loaded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    unloaded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    delivered_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    loaded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    unloaded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    operator = db.relationship("Operator", backref=db.backref("bookings", lazy=True))
    from_branch = db.relationship("Branch", foreign_keys=[from_branch_id])
    to_branch = db.relationship("Branch", foreign_keys=[to_branch_id])
    assigned_vehicle = db.relationship("Vehicle", backref=db.backref("bookings", lazy=True))
    booked_by = db.relationship("User", foreign_keys=[booked_by_user_id])

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Booking id={self.id} code={self.booking_code!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "booking_code": self.booking_code,
            "booking_sequence": self.booking_sequence,
            "booking_date": to_iso_date(self.booking_date),
            "status": self.status,
            "lr_type": self.lr_type,
            "payment_type": self.payment_type,
            "sender_name": self.sender_name,
            "sender_phone": self.sender_phone,
            "sender_email": self.sender_email,
            "sender_address": self.sender_address,
            "receiver_name": self.receiver_name,
            "receiver_phone": self.receiver_phone,
            "receiver_email": self.receiver_email,
            "receiver_address": self.receiver_address,
            "from_branch": {"id": self.from_branch.id, "name": self.from_branch.name} if self.from_branch else None,
            "to_branch": {"id": self.to_branch.id, "name": self.to_branch.name} if self.to_branch else None,
            "assigned_vehicle": (
                {"id": self.assigned_vehicle.id, "vehicle_number": self.assigned_vehicle.vehicle_number}
                if self.assigned_vehicle else None
            ),
            "dispatch_date": to_iso_date(self.dispatch_date),
            "arrival_date": to_iso_date(self.arrival_date),
            "package_description": self.package_description,
            "weight": money(self.weight),
            "quantity": self.quantity,
            "value_of_goods": money(self.value_of_goods),
            "dimensions": self.dimensions,
            "freight_charge": money(self.freight_charge),
            "loading_charge": money(self.loading_charge),
            "unloading_charge": money(self.unloading_charge),
            "other_charge": money(self.other_charge),
            "total_amount_charge": money(self.total_amount_charge),
            "booked_by_user_id": self.booked_by_user_id,
            "loaded_by_user_id": self.loaded_by_user_id,
            "unloaded_by_user_id": self.unloaded_by_user_id,
            "delivered_by_user_id": self.delivered_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "loaded_at": to_utc_z(self.loaded_at),
            "unloaded_at": to_utc_z(self.unloaded_at),
            "delivered_at": to_utc_z(self.delivered_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "cancellation_reason": self.cancellation_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

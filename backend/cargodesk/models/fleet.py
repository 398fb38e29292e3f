from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Vehicle(db.Model):
    """Operator-owned vehicle that bookings are loaded onto."""
    __tablename__ = "vehicles"
    __table_args__ = (
        db.UniqueConstraint("operator_id", "vehicle_number", name="uq_vehicles_operator_number"),
        db.Index("ix_vehicles_operator_id", "operator_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("operators.id"), nullable=False)
    vehicle_number = db.Column(db.String(32), nullable=False)
    vehicle_type = db.Column(db.String(64), nullable=False)
    capacity = db.Column(db.String(64), nullable=False)
    driver = db.Column(db.String(120), nullable=False)
    current_location = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Available")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    operator = db.relationship("Operator", backref=db.backref("vehicles", lazy=True))

    def __repr__(self) -> str:
        return f"<Vehicle id={self.id} number={self.vehicle_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "vehicle_number": self.vehicle_number,
            "vehicle_type": self.vehicle_type,
            "capacity": self.capacity,
            "driver": self.driver,
            "current_location": self.current_location,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Operator(db.Model):
    """
    Multi-tenant root: every tenant is an Operator.

    All branches, users, vehicles, bookings and transfers belong to exactly
    one operator and every query touching them is scoped by operator_id.

    booking_sequence is the per-operator counter used to mint booking
    identifiers. It is only ever changed through an atomic
    UPDATE ... SET booking_sequence = booking_sequence + 1 and never decremented.
    """
    __tablename__ = "operators"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    code = db.Column(db.String(3), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=False)
    address = db.Column(db.String(500), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    booking_sequence = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    payment_methods = db.Column(db.JSON, nullable=False, default=lambda: ["cash", "UPI"])

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self) -> str:
        return f"<Operator id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "phone": self.phone,
            "address": self.address,
            "status": self.status,
            "booking_sequence": self.booking_sequence,
            "payment_methods": list(self.payment_methods or []),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Branch(db.Model):
    """
    Booking office of an operator. Bookings travel from one branch to another.

    Branch codes are unique within an operator, not globally.
    """
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("operator_id", "branch_code", name="uq_branches_operator_code"),
        db.Index("ix_branches_operator_id", "operator_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("operators.id"), nullable=False)
    branch_code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(500), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    manager = db.Column(db.String(120), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    operator = db.relationship("Operator", backref=db.backref("branches", lazy=True))

    def __repr__(self) -> str:
        return f"<Branch id={self.id} code={self.branch_code!r} operator_id={self.operator_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "branch_code": self.branch_code,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "manager": self.manager,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }

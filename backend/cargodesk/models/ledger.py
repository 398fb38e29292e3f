from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money


class CashTransfer(db.Model):
    """
    Request to move cargo balance from one user to another.

    STATE MACHINE (cash_transfer_service.TRANSFER_TRANSITIONS):
        Pending -> Approved   (applies the balance change, exactly once)
        Pending -> Rejected   (no balance effect)
    Approved and Rejected are terminal; settled transfers cannot be edited
    or deleted.
    """
    __tablename__ = "cash_transfers"
    __table_args__ = (
        db.Index("ix_cash_transfers_operator_status", "operator_id", "status"),
        db.CheckConstraint("amount > 0", name="ck_cash_transfers_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("operators.id"), nullable=False, index=True)
    from_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Pending")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    decided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    from_user = db.relationship("User", foreign_keys=[from_user_id])
    to_user = db.relationship("User", foreign_keys=[to_user_id])

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<CashTransfer id={self.id} status={self.status!r} amount={self.amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "amount": money(self.amount),
            "description": self.description,
            "status": self.status,
            "date": self.created_at.date().isoformat() if self.created_at else None,
            "from_user": (
                {"id": self.from_user.id, "full_name": self.from_user.full_name}
                if self.from_user else None
            ),
            "to_user": (
                {"id": self.to_user.id, "full_name": self.to_user.full_name}
                if self.to_user else None
            ),
            "created_by_user_id": self.created_by_user_id,
            "decided_by_user_id": self.decided_by_user_id,
            "decided_at": to_utc_z(self.decided_at),
            "created_at": to_utc_z(self.created_at),
        }


class Transaction(db.Model):
    """
    Append-only record of a balance-affecting event.

    - Written in the same DB transaction as the balance mutation it records.
    - balance_after is the balance of user_id right after the event.
    - Never updated or deleted.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_operator_created", "operator_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("operators.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    balance_after = db.Column(db.Numeric(12, 2), nullable=False)

    from_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    to_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True, index=True)
    cash_transfer_id = db.Column(db.Integer, db.ForeignKey("cash_transfers.id"), nullable=True, index=True)

    description = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id])
    from_user = db.relationship("User", foreign_keys=[from_user_id])
    to_user = db.relationship("User", foreign_keys=[to_user_id])
    booking = db.relationship("Booking")
    cash_transfer = db.relationship("CashTransfer")

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type!r} amount={self.amount}>"

    def to_dict(self) -> dict:
        amount = self.amount or 0
        balance_after = self.balance_after or 0
        return {
            "id": self.id,
            "type": self.type,
            "user_id": self.user_id,
            "amount": money(amount),
            "balance_after": money(balance_after),
            "old_balance": money(balance_after - amount),
            "from_user_name": self.from_user.full_name if self.from_user else None,
            "to_user_name": self.to_user.full_name if self.to_user else None,
            "booking_code": self.booking.booking_code if self.booking else None,
            "booked_by_name": (
                self.booking.booked_by.full_name
                if self.booking and self.booking.booked_by else None
            ),
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }

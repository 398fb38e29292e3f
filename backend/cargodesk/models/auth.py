from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money


class User(db.Model):
    """
    Operator staff account.

    MULTI-TENANT: Users belong to exactly one operator (operator_id).
    Mobile numbers are globally unique because they are the login identifier.

    cargo_balance is the running total of cash held by the user. It changes
    only through ledger_service (booking charges and approved transfers),
    never through the user update endpoints.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_operator_id", "operator_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("operators.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)

    full_name = db.Column(db.String(120), nullable=False)
    mobile = db.Column(db.String(32), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default="staff")
    status = db.Column(db.String(16), nullable=False, default="Active")

    # Platform superuser: may onboard new operators
    is_superuser = db.Column(db.Boolean, nullable=False, default=False)

    cargo_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0, server_default="0")

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    operator = db.relationship("Operator", backref=db.backref("users", lazy=True))
    branch = db.relationship("Branch", backref=db.backref("users", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == "Active"

    def __repr__(self) -> str:
        return f"<User id={self.id} mobile={self.mobile!r} operator_id={self.operator_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "branch_id": self.branch_id,
            "full_name": self.full_name,
            "mobile": self.mobile,
            "role": self.role,
            "status": self.status,
            "is_superuser": self.is_superuser,
            "cargo_balance": money(self.cargo_balance),
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Opaque bearer token. Only the SHA-256 hash is stored.

    operator_id is captured at login and is immutable for the session
    lifetime; it is the tenant context for every authenticated request.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("operators.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))
    operator = db.relationship("Operator")

"""Initial cargo booking schema

Revision ID: 20261019_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=nullable,
    )


def upgrade():
    op.create_table(
        "operators",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=3), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("booking_sequence", sa.Integer(), server_default="0", nullable=False),
        sa.Column("payment_methods", sa.JSON(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_operators_code", "operators", ["code"], unique=True)
    op.create_index("ix_operators_status", "operators", ["status"], unique=False)

    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("branch_code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("manager", sa.String(length=120), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["operator_id"], ["operators.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("operator_id", "branch_code", name="uq_branches_operator_code"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_branches_operator_id", "branches", ["operator_id"], unique=False)

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_number", sa.String(length=32), nullable=False),
        sa.Column("vehicle_type", sa.String(length=64), nullable=False),
        sa.Column("capacity", sa.String(length=64), nullable=False),
        sa.Column("driver", sa.String(length=120), nullable=False),
        sa.Column("current_location", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["operator_id"], ["operators.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("operator_id", "vehicle_number", name="uq_vehicles_operator_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_vehicles_operator_id", "vehicles", ["operator_id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("mobile", sa.String(length=32), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("is_superuser", sa.Boolean(), nullable=False),
        sa.Column("cargo_balance", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["operator_id"], ["operators.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_mobile", "users", ["mobile"], unique=True)
    op.create_index("ix_users_operator_id", "users", ["operator_id"], unique=False)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(length=255), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(["operator_id"], ["operators.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_user_id", "session_tokens", ["user_id"], unique=False)
    op.create_index("ix_session_tokens_operator_id", "session_tokens", ["operator_id"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("booking_code", sa.String(length=40), nullable=False),
        sa.Column("booking_sequence", sa.Integer(), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("lr_type", sa.String(length=8), nullable=False),
        sa.Column("payment_type", sa.String(length=8), nullable=False),
        sa.Column("sender_name", sa.String(length=120), nullable=True),
        sa.Column("sender_phone", sa.String(length=32), nullable=False),
        sa.Column("sender_email", sa.String(length=255), nullable=True),
        sa.Column("sender_address", sa.String(length=500), nullable=True),
        sa.Column("receiver_name", sa.String(length=120), nullable=True),
        sa.Column("receiver_phone", sa.String(length=32), nullable=False),
        sa.Column("receiver_email", sa.String(length=255), nullable=True),
        sa.Column("receiver_address", sa.String(length=500), nullable=True),
        sa.Column("from_branch_id", sa.Integer(), nullable=False),
        sa.Column("to_branch_id", sa.Integer(), nullable=False),
        sa.Column("assigned_vehicle_id", sa.Integer(), nullable=True),
        sa.Column("dispatch_date", sa.Date(), nullable=True),
        sa.Column("arrival_date", sa.Date(), nullable=True),
        sa.Column("package_description", sa.String(length=500), nullable=True),
        sa.Column("weight", sa.Numeric(12, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("value_of_goods", sa.Numeric(12, 2), nullable=False),
        sa.Column("dimensions", sa.String(length=64), nullable=True),
        sa.Column("freight_charge", sa.Numeric(12, 2), nullable=False),
        sa.Column("loading_charge", sa.Numeric(12, 2), nullable=False),
        sa.Column("unloading_charge", sa.Numeric(12, 2), nullable=False),
        sa.Column("other_charge", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_amount_charge", sa.Numeric(12, 2), nullable=False),
        sa.Column("booked_by_user_id", sa.Integer(), nullable=False),
        sa.Column("loaded_by_user_id", sa.Integer(), nullable=True),
        sa.Column("unloaded_by_user_id", sa.Integer(), nullable=True),
        sa.Column("delivered_by_user_id", sa.Integer(), nullable=True),
        sa.Column("cancelled_by_user_id", sa.Integer(), nullable=True),
        sa.Column("loaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unloaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=255), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["operator_id"], ["operators.id"]),
        sa.ForeignKeyConstraint(["from_branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["to_branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["assigned_vehicle_id"], ["vehicles.id"]),
        sa.ForeignKeyConstraint(["booked_by_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["loaded_by_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["unloaded_by_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["delivered_by_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["cancelled_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("operator_id", "booking_code", name="uq_bookings_operator_code"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_bookings_operator_id", "bookings", ["operator_id"], unique=False)
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"], unique=False)
    op.create_index("ix_bookings_assigned_vehicle_id", "bookings", ["assigned_vehicle_id"], unique=False)
    op.create_index("ix_bookings_booked_by_user_id", "bookings", ["booked_by_user_id"], unique=False)
    op.create_index("ix_bookings_operator_date", "bookings", ["operator_id", "booking_date"], unique=False)
    op.create_index("ix_bookings_operator_status", "bookings", ["operator_id", "status"], unique=False)

    op.create_table(
        "cash_transfers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("from_user_id", sa.Integer(), nullable=False),
        sa.Column("to_user_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        sa.Column("decided_by_user_id", sa.Integer(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint("amount > 0", name="ck_cash_transfers_amount_positive"),
        sa.ForeignKeyConstraint(["operator_id"], ["operators.id"]),
        sa.ForeignKeyConstraint(["from_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["to_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["decided_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_cash_transfers_operator_id", "cash_transfers", ["operator_id"], unique=False)
    op.create_index("ix_cash_transfers_from_user_id", "cash_transfers", ["from_user_id"], unique=False)
    op.create_index("ix_cash_transfers_to_user_id", "cash_transfers", ["to_user_id"], unique=False)
    op.create_index("ix_cash_transfers_operator_status", "cash_transfers", ["operator_id", "status"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("from_user_id", sa.Integer(), nullable=True),
        sa.Column("to_user_id", sa.Integer(), nullable=True),
        sa.Column("booking_id", sa.Integer(), nullable=True),
        sa.Column("cash_transfer_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["operator_id"], ["operators.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["from_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["to_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.ForeignKeyConstraint(["cash_transfer_id"], ["cash_transfers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"], unique=False)
    op.create_index("ix_transactions_booking_id", "transactions", ["booking_id"], unique=False)
    op.create_index("ix_transactions_cash_transfer_id", "transactions", ["cash_transfer_id"], unique=False)
    op.create_index("ix_transactions_operator_created", "transactions", ["operator_id", "created_at"], unique=False)


def downgrade():
    op.drop_table("transactions")
    op.drop_table("cash_transfers")
    op.drop_table("bookings")
    op.drop_table("session_tokens")
    op.drop_table("users")
    op.drop_table("vehicles")
    op.drop_table("branches")
    op.drop_table("operators")

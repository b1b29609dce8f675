# backend/alembic/versions/001_booking_engine.py
"""Booking engine schema - providers, offerings, windows, bookings, payments

Revision ID: 001_booking_engine
Revises:
Create Date: 2026-10-19 00:00:00.000000

Bookings carry a resource attribution so the store itself can refuse two
active bookings of one resource that overlap. On PostgreSQL that is a GiST
exclusion constraint over a generated tstzrange column; on SQLite the same
rule is enforced by insert/update triggers.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from slotkeeper.models.booking import POSTGRES_OVERLAP_DDL, SQLITE_OVERLAP_DDL

# revision identifiers, used by Alembic.
revision: str = "001_booking_engine"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create booking engine tables and the overlap guard."""
    print("Creating booking engine tables...")

    op.create_table(
        "providers",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("stripe_account_id", sa.String(255), nullable=True),
        sa.Column("stripe_account_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("stripe_account_id"),
        sa.CheckConstraint(
            "stripe_account_status IN ('PENDING', 'ACTIVE', 'RESTRICTED')",
            name="ck_providers_stripe_account_status",
        ),
    )
    op.create_index("ix_providers_id", "providers", ["id"])

    op.create_table(
        "resources",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("provider_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"]),
    )
    op.create_index("ix_resources_id", "resources", ["id"])
    op.create_index("ix_resources_provider_id", "resources", ["provider_id"])

    op.create_table(
        "offerings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("provider_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slot_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("slot_buffer_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("advance_booking_min_minutes", sa.Integer(), nullable=False, server_default="0"),
        # NULL means no upper bound
        sa.Column("advance_booking_max_minutes", sa.Integer(), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"]),
        sa.CheckConstraint("slot_duration_minutes > 0", name="ck_offerings_duration_positive"),
        sa.CheckConstraint("slot_buffer_minutes >= 0", name="ck_offerings_buffer_non_negative"),
        sa.CheckConstraint("advance_booking_min_minutes >= 0", name="ck_offerings_min_advance"),
        sa.CheckConstraint("price_cents >= 0", name="ck_offerings_price_non_negative"),
    )
    op.create_index("ix_offerings_id", "offerings", ["id"])
    op.create_index("ix_offerings_provider_id", "offerings", ["provider_id"])

    op.create_table(
        "availability_windows",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("resource_id", sa.String(26), nullable=False),
        sa.Column("offering_id", sa.String(26), nullable=True),
        sa.Column("weekday", sa.Integer(), nullable=False, comment="0=Sunday .. 6=Saturday"),
        sa.Column("start_local", sa.String(5), nullable=False),
        sa.Column("end_local", sa.String(5), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["resource_id"], ["resources.id"]),
        sa.ForeignKeyConstraint(["offering_id"], ["offerings.id"]),
        sa.CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_availability_windows_weekday"),
    )
    op.create_index("ix_availability_windows_id", "availability_windows", ["id"])
    op.create_index(
        "ix_availability_windows_resource_weekday",
        "availability_windows",
        ["resource_id", "weekday"],
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("offering_id", sa.String(26), nullable=False),
        # NULL only for legacy rows; those block every resource
        sa.Column("resource_id", sa.String(26), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="CONFIRMED"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["offering_id"], ["offerings.id"]),
        sa.ForeignKeyConstraint(["resource_id"], ["resources.id"]),
        sa.CheckConstraint(
            "status IN ('CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint("end_at > start_at", name="ck_bookings_time_order"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_offering_id", "bookings", ["offering_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_resource_start", "bookings", ["resource_id", "start_at"])

    op.create_table(
        "booking_participants",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("resource_id", sa.String(26), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="INVITEE"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.ForeignKeyConstraint(["resource_id"], ["resources.id"]),
        sa.CheckConstraint(
            "role IN ('HOST', 'CO_HOST', 'INVITEE')", name="ck_booking_participants_role"
        ),
    )
    op.create_index("ix_booking_participants_booking_id", "booking_participants", ["booking_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("platform_fee_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.UniqueConstraint("booking_id"),
        sa.UniqueConstraint(
            "stripe_payment_intent_id", name="uq_payments_stripe_payment_intent_id"
        ),
        sa.CheckConstraint("amount_cents >= 0", name="ck_payments_amount_non_negative"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'SUCCEEDED', 'FAILED', 'REFUNDED')",
            name="ck_payments_status",
        ),
    )
    op.create_index("ix_payments_id", "payments", ["id"])

    dialect = op.get_bind().dialect.name
    if dialect == "postgresql":
        print("Adding booking overlap exclusion constraint...")
        for statement in POSTGRES_OVERLAP_DDL:
            op.execute(statement)
    elif dialect == "sqlite":
        print("Adding booking overlap triggers...")
        for statement in SQLITE_OVERLAP_DDL:
            op.execute(statement)

    print("Booking engine tables created successfully!")


def downgrade() -> None:
    """Drop booking engine tables."""
    print("Dropping booking engine tables...")

    dialect = op.get_bind().dialect.name
    if dialect == "sqlite":
        op.execute("DROP TRIGGER IF EXISTS bookings_no_overlap_per_resource_insert")
        op.execute("DROP TRIGGER IF EXISTS bookings_no_overlap_per_resource_update")

    op.drop_index("ix_payments_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_booking_participants_booking_id", table_name="booking_participants")
    op.drop_table("booking_participants")
    op.drop_index("ix_bookings_resource_start", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_offering_id", table_name="bookings")
    op.drop_index("ix_bookings_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_availability_windows_resource_weekday", table_name="availability_windows")
    op.drop_index("ix_availability_windows_id", table_name="availability_windows")
    op.drop_table("availability_windows")
    op.drop_index("ix_offerings_provider_id", table_name="offerings")
    op.drop_index("ix_offerings_id", table_name="offerings")
    op.drop_table("offerings")
    op.drop_index("ix_resources_provider_id", table_name="resources")
    op.drop_index("ix_resources_id", table_name="resources")
    op.drop_table("resources")
    op.drop_index("ix_providers_id", table_name="providers")
    op.drop_table("providers")

    print("Booking engine tables dropped successfully!")

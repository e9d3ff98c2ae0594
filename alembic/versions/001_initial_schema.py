"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates all initial tables for the fleet booking service:
- Vehicles and drivers
- Bookings
- Booking history (append-only)

Also installs btree_gist and an exclusion constraint so two occupying
bookings (approved, confirmed, active) can never hold the same vehicle for
overlapping periods, even under concurrent writes.
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== VEHICLES ====================
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("plate_number", sa.String(20), nullable=False),
        sa.Column("vehicle_type", sa.String(20), nullable=False),
        sa.Column("make", sa.String(50)),
        sa.Column("model", sa.String(50)),
        sa.Column("year", sa.Integer),
        sa.Column("color", sa.String(30)),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("location", sa.String(100)),
        sa.Column("fuel_type", sa.String(20)),
        sa.Column("vehicle_group", sa.String(50)),
        sa.Column("cost_center", sa.String(50)),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("available_for_booking", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("last_maintenance", sa.DateTime(timezone=True)),
        sa.Column("next_maintenance", sa.DateTime(timezone=True)),
        sa.Column("mileage", sa.Float, nullable=False, server_default="0"),
        sa.Column("deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="ck_vehicles_capacity"),
    )
    op.create_index("ix_vehicles_plate_number", "vehicles", ["plate_number"], unique=True)
    op.create_index("ix_vehicles_status", "vehicles", ["status"])
    op.create_index("ix_vehicles_next_maintenance", "vehicles", ["next_maintenance"])
    op.create_index("ix_vehicles_deleted", "vehicles", ["deleted"])

    # ==================== DRIVERS ====================
    op.create_table(
        "drivers",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, nullable=False),
        sa.Column("license_type", sa.String(20), nullable=False),
        sa.Column("license_number", sa.String(50), nullable=False, unique=True),
        sa.Column("license_expiry_date", sa.Date),
        sa.Column("last_health_check", sa.Date),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("available_for_booking", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("phone_number", sa.String(30)),
        sa.Column("department", sa.String(100)),
        sa.Column("cost_center", sa.String(50)),
        sa.Column("shift", sa.String(30)),
        sa.Column("notes", sa.Text),
        sa.Column("years_of_experience", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_trips_completed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_miles_driven", sa.Float, nullable=False, server_default="0"),
        sa.Column("deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_drivers_user_id", "drivers", ["user_id"])
    op.create_index("ix_drivers_status", "drivers", ["status"])
    op.create_index("ix_drivers_license_expiry_date", "drivers", ["license_expiry_date"])
    op.create_index("ix_drivers_deleted", "drivers", ["deleted"])

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("booking_reference", sa.String(64), nullable=False),
        sa.Column("vehicle_id", sa.Uuid, sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column("driver_id", sa.Uuid, sa.ForeignKey("drivers.id")),
        sa.Column("requester_id", sa.Uuid, nullable=False),
        sa.Column("approver_id", sa.Uuid),
        sa.Column("booking_type", sa.String(30), nullable=False, server_default="business_trip"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actual_start_time", sa.DateTime(timezone=True)),
        sa.Column("actual_end_time", sa.DateTime(timezone=True)),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("return_location", sa.String(255)),
        sa.Column("purpose", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("estimated_passengers", sa.Integer, nullable=False, server_default="1"),
        sa.Column("cost_center", sa.String(50)),
        sa.Column("manager_name", sa.String(100)),
        sa.Column("additional_requirements", sa.Text),
        sa.Column("approval_comment", sa.Text),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("rejected_at", sa.DateTime(timezone=True)),
        sa.Column("rejection_reason", sa.Text),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("feedback", sa.Text),
        sa.Column("actual_mileage", sa.Float),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("start_time < end_time", name="ck_bookings_time_range"),
        sa.CheckConstraint("estimated_passengers > 0", name="ck_bookings_passengers"),
    )
    op.create_index("ix_bookings_booking_reference", "bookings", ["booking_reference"], unique=True)
    op.create_index("ix_bookings_vehicle_id", "bookings", ["vehicle_id"])
    op.create_index("ix_bookings_driver_id", "bookings", ["driver_id"])
    op.create_index("ix_bookings_requester_id", "bookings", ["requester_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_start_time", "bookings", ["start_time"])
    op.create_index("ix_bookings_end_time", "bookings", ["end_time"])

    # No two occupying bookings may overlap on the same vehicle or driver
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        """
        ALTER TABLE bookings ADD CONSTRAINT ex_bookings_vehicle_overlap
        EXCLUDE USING gist (
            vehicle_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
        ) WHERE (status IN ('approved', 'confirmed', 'active'))
        """
    )
    op.execute(
        """
        ALTER TABLE bookings ADD CONSTRAINT ex_bookings_driver_overlap
        EXCLUDE USING gist (
            driver_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
        ) WHERE (driver_id IS NOT NULL AND status IN ('approved', 'confirmed', 'active'))
        """
    )

    # ==================== BOOKING HISTORY ====================
    op.create_table(
        "booking_events",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("booking_id", sa.Uuid, sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("booking_reference", sa.String(64), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("caused_by", sa.String(64), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("booking_id", "sequence", name="uq_booking_events_sequence"),
    )
    op.create_index("ix_booking_events_booking_id", "booking_events", ["booking_id"])
    op.create_index("ix_booking_events_booking_reference", "booking_events", ["booking_reference"])


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("booking_events")
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_driver_overlap")
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_vehicle_overlap")
    op.drop_table("bookings")
    op.drop_table("drivers")
    op.drop_table("vehicles")

"""Init terminal, vessel, container, driver, slot and trip tables

Revision ID: 20260301_000001
Revises:
Create Date: 2026-03-01 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20260301_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "terminal",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("status", sa.String(32), nullable=False, server_default="ACTIVE"),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_terminal_code", "terminal", ["code"])
    op.create_index("ix_terminal_deleted_at", "terminal", ["deleted_at"])

    op.create_table(
        "terminal_settings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("terminal_id", sa.String(36), sa.ForeignKey("terminal.id"), nullable=False),
        sa.Column("slot_duration", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("max_slots_per_window", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("operating_hours", sa.JSON(), nullable=False),
        sa.Column("closed_days", sa.JSON(), nullable=True),
        sa.Column("special_rules", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_terminal_settings_terminal_id", "terminal_settings", ["terminal_id"], unique=True)

    op.create_table(
        "vessel",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("eta", sa.DateTime(), nullable=False),
        sa.Column("terminal_id", sa.String(36), sa.ForeignKey("terminal.id"), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="ARRIVING"),
        sa.Column("container_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_vessel_eta", "vessel", ["eta"])
    op.create_index("ix_vessel_terminal_id", "vessel", ["terminal_id"])
    op.create_index("ix_vessel_deleted_at", "vessel", ["deleted_at"])

    op.create_table(
        "vessel_schedule",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("vessel_id", sa.String(36), sa.ForeignKey("vessel.id"), nullable=False),
        sa.Column("terminal_id", sa.String(36), sa.ForeignKey("terminal.id"), nullable=False),
        sa.Column("eta", sa.DateTime(), nullable=False),
        sa.Column("etd", sa.DateTime(), nullable=False),
        sa.Column("actual_arrival", sa.DateTime(), nullable=True),
        sa.Column("actual_departure", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="SCHEDULED"),
        *_timestamps(),
    )
    op.create_index("ix_vessel_schedule_vessel_id", "vessel_schedule", ["vessel_id"])
    op.create_index("ix_vessel_schedule_terminal_id", "vessel_schedule", ["terminal_id"])

    op.create_table(
        "container",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("cntr_no", sa.String(11), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("line", sa.String(50), nullable=False),
        sa.Column("ready_at", sa.DateTime(), nullable=True),
        sa.Column("hold", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(32), nullable=False, server_default="NOT_READY"),
        sa.Column("terminal_id", sa.String(36), sa.ForeignKey("terminal.id"), nullable=False),
        sa.Column("vessel_id", sa.String(36), sa.ForeignKey("vessel.id"), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_container_cntr_no", "container", ["cntr_no"])
    op.create_index("ix_container_terminal_id", "container", ["terminal_id"])
    op.create_index("ix_container_vessel_id", "container", ["vessel_id"])
    op.create_index("ix_container_deleted_at", "container", ["deleted_at"])

    op.create_table(
        "container_hold",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("container_id", sa.String(36), sa.ForeignKey("container.id"), nullable=False),
        sa.Column("reason", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_container_hold_container_id", "container_hold", ["container_id"])

    op.create_table(
        "driver",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="ACTIVE"),
        sa.Column("license_number", sa.String(50), nullable=False),
        sa.Column("license_expiry", sa.DateTime(), nullable=False),
        sa.Column("carrier_id", sa.String(36), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_driver_license_number", "driver", ["license_number"])
    op.create_index("ix_driver_carrier_id", "driver", ["carrier_id"])
    op.create_index("ix_driver_deleted_at", "driver", ["deleted_at"])

    op.create_table(
        "driver_availability",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("driver.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="AVAILABLE"),
        *_timestamps(),
    )
    op.create_index("ix_driver_availability_driver_id", "driver_availability", ["driver_id"])
    op.create_index("ix_driver_availability_date", "driver_availability", ["date"])

    op.create_table(
        "driver_metrics",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("driver.id"), nullable=False),
        sa.Column("total_trips", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_trips", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed_trips", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_turn_time", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_distance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rating", sa.Float(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_driver_metrics_driver_id", "driver_metrics", ["driver_id"], unique=True)

    op.create_table(
        "slot",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("terminal_id", sa.String(36), sa.ForeignKey("terminal.id"), nullable=False),
        sa.Column("window_start", sa.DateTime(), nullable=False),
        sa.Column("window_end", sa.DateTime(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("booked", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(32), nullable=False, server_default="AVAILABLE"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("booked >= 0 AND booked <= capacity", name="ck_slot_booked_within_capacity"),
    )
    op.create_index("ix_slot_terminal_id", "slot", ["terminal_id"])
    op.create_index("ix_slot_window_start", "slot", ["window_start"])
    op.create_index("ix_slot_status", "slot", ["status"])
    op.create_index("ix_slot_deleted_at", "slot", ["deleted_at"])
    op.create_index("ix_slot_terminal_window", "slot", ["terminal_id", "window_start", "window_end"])

    op.create_table(
        "trip",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("driver.id"), nullable=False),
        sa.Column("container_id", sa.String(36), sa.ForeignKey("container.id"), nullable=False),
        sa.Column("pickup_slot_id", sa.String(36), sa.ForeignKey("slot.id"), nullable=True),
        sa.Column("return_empty", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(32), nullable=False, server_default="ASSIGNED"),
        sa.Column("eta", sa.DateTime(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_trip_driver_id", "trip", ["driver_id"])
    op.create_index("ix_trip_container_id", "trip", ["container_id"])
    op.create_index("ix_trip_pickup_slot_id", "trip", ["pickup_slot_id"])
    op.create_index("ix_trip_status", "trip", ["status"])
    op.create_index("ix_trip_deleted_at", "trip", ["deleted_at"])

    op.create_table(
        "trip_metrics",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("trip_id", sa.String(36), sa.ForeignKey("trip.id"), nullable=False),
        sa.Column("total_distance", sa.Float(), nullable=True),
        sa.Column("estimated_duration", sa.Float(), nullable=True),
        sa.Column("actual_duration", sa.Float(), nullable=True),
        sa.Column("fuel_consumption", sa.Float(), nullable=True),
        sa.Column("carbon_footprint", sa.Float(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_trip_metrics_trip_id", "trip_metrics", ["trip_id"], unique=True)

    op.create_table(
        "trip_event",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("trip_id", sa.String(36), sa.ForeignKey("trip.id"), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("location", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_trip_event_trip_id", "trip_event", ["trip_id"])
    op.create_index("ix_trip_event_timestamp", "trip_event", ["timestamp"])

    op.create_table(
        "slot_booking",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("slot_id", sa.String(36), sa.ForeignKey("slot.id"), nullable=False),
        sa.Column("trip_id", sa.String(36), sa.ForeignKey("trip.id"), nullable=False),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("driver.id"), nullable=False),
        sa.Column("container_id", sa.String(36), sa.ForeignKey("container.id"), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="CONFIRMED"),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_slot_booking_slot_id", "slot_booking", ["slot_id"])
    op.create_index("ix_slot_booking_trip_id", "slot_booking", ["trip_id"])
    op.create_index("ix_slot_booking_driver_id", "slot_booking", ["driver_id"])
    op.create_index("ix_slot_booking_container_id", "slot_booking", ["container_id"])


def downgrade() -> None:
    for table in (
        "slot_booking",
        "trip_event",
        "trip_metrics",
        "trip",
        "slot",
        "driver_metrics",
        "driver_availability",
        "driver",
        "container_hold",
        "container",
        "vessel_schedule",
        "vessel",
        "terminal_settings",
        "terminal",
    ):
        op.drop_table(table)

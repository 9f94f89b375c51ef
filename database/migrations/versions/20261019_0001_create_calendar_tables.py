"""create calendar tables

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "practitioners",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "base_schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("practitioner_id", sa.String(length=36), nullable=False),
        sa.Column("location_id", sa.String(length=36), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("break_times", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_base_schedules_practitioner_id", "base_schedules", ["practitioner_id"])
    op.create_index("ix_base_schedules_location_id", "base_schedules", ["location_id"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("start", sa.DateTime(), nullable=False),
        sa.Column("end", sa.DateTime(), nullable=False),
        sa.Column("practitioner_id", sa.String(length=36), nullable=True),
        sa.Column("resource", sa.String(length=20), nullable=True),
        sa.Column("location_id", sa.String(length=36), nullable=False),
        sa.Column("practice_id", sa.String(length=36), nullable=False),
        sa.Column("appointment_type_id", sa.String(length=36), nullable=True),
        sa.Column("patient_id", sa.String(length=36), nullable=True),
        sa.Column("is_simulation", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("replaces_appointment_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_appointments_start", "appointments", ["start"])
    op.create_index("ix_appointments_practitioner_id", "appointments", ["practitioner_id"])
    op.create_index("ix_appointments_location_id", "appointments", ["location_id"])
    op.create_index("ix_appointments_is_simulation", "appointments", ["is_simulation"])
    op.create_index("ix_appointments_replaces_appointment_id", "appointments", ["replaces_appointment_id"])

    op.create_table(
        "blocked_slots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("start", sa.DateTime(), nullable=False),
        sa.Column("end", sa.DateTime(), nullable=False),
        sa.Column("practitioner_id", sa.String(length=36), nullable=True),
        sa.Column("location_id", sa.String(length=36), nullable=False),
        sa.Column("practice_id", sa.String(length=36), nullable=False),
        sa.Column("is_simulation", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("replaces_blocked_slot_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_blocked_slots_start", "blocked_slots", ["start"])
    op.create_index("ix_blocked_slots_practitioner_id", "blocked_slots", ["practitioner_id"])
    op.create_index("ix_blocked_slots_location_id", "blocked_slots", ["location_id"])
    op.create_index("ix_blocked_slots_is_simulation", "blocked_slots", ["is_simulation"])
    op.create_index("ix_blocked_slots_replaces_blocked_slot_id", "blocked_slots", ["replaces_blocked_slot_id"])


def downgrade() -> None:
    op.drop_table("blocked_slots")
    op.drop_table("appointments")
    op.drop_table("base_schedules")
    op.drop_table("practitioners")

"""create scheduling tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create appointments, notifications, blocked ranges and counters."""
    op.create_table(
        "appointments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("appointment_number", sa.String(20), nullable=False),
        sa.Column("patient_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("middle_name", sa.String(50), nullable=True),
        sa.Column("birthdate", sa.Date(), nullable=False),
        sa.Column("sex", sa.String(10), nullable=False),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("religion", sa.String(30), nullable=True),
        sa.Column("mother_info", postgresql.JSON(), nullable=True),
        sa.Column("father_info", postgresql.JSON(), nullable=True),
        sa.Column("preferred_date", sa.Date(), nullable=False),
        sa.Column("preferred_time", sa.String(5), nullable=False),
        sa.Column("reason_for_visit", sa.Text(), nullable=False),
        sa.Column("contact_number", sa.String(20), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Pending'")),
        sa.Column(
            "source", sa.String(20), nullable=False, server_default=sa.text("'patient_app'")
        ),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_number"),
        sa.CheckConstraint(
            "status IN ('Pending', 'Scheduled', 'Completed', 'Cancelled', 'Rebooked')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint("sex IN ('Male', 'Female')", name="appointments_sex_check"),
    )
    # Cancelled appointments release their slot
    op.create_index(
        "uq_appointments_active_slot",
        "appointments",
        ["preferred_date", "preferred_time"],
        unique=True,
        postgresql_where=sa.text("status <> 'Cancelled'"),
    )
    op.create_index("idx_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("idx_appointments_status", "appointments", ["status"])

    op.create_table(
        "notifications",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("source_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "source_type", sa.String(20), nullable=False, server_default=sa.text("'System'")
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("entity_type", sa.String(20), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "source_id", "entity_id", "type", "entity_type", name="unique_notification_event"
        ),
        sa.CheckConstraint(
            "source_type IN ('Patient', 'Doctor', 'Secretary', 'System')",
            name="notifications_source_type_check",
        ),
        sa.CheckConstraint(
            "type IN ('AppointmentReminder', 'AppointmentCreated', 'AppointmentUpdated', "
            "'AppointmentCancelled', 'PatientCreated', 'MedicalRecordUpdated', "
            "'LowStock', 'ExpiredItem')",
            name="notifications_type_check",
        ),
        sa.CheckConstraint(
            "entity_type IS NULL OR entity_type IN "
            "('Appointment', 'Patient', 'MedicalRecord', 'Inventory')",
            name="notifications_entity_type_check",
        ),
    )
    op.create_index("idx_notifications_source_id", "notifications", ["source_id"])
    op.create_index("idx_notifications_created_at", "notifications", ["created_at"])
    op.create_index("idx_notifications_source_read", "notifications", ["source_id", "is_read"])

    op.create_table(
        "blocked_time_ranges",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(50), nullable=True),
        sa.Column("custom_reason", sa.String(100), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("end_date >= start_date", name="blocked_time_ranges_dates_check"),
    )
    op.create_index(
        "idx_blocked_time_ranges_dates", "blocked_time_ranges", ["start_date", "end_date"]
    )
    op.create_index(
        "idx_blocked_time_ranges_active_start",
        "blocked_time_ranges",
        ["is_active", "start_date"],
    )

    op.create_table(
        "counters",
        sa.Column("key", sa.String(50), nullable=False),
        sa.Column("value", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Drop scheduling tables."""
    op.drop_table("counters")
    op.drop_index("idx_blocked_time_ranges_active_start", table_name="blocked_time_ranges")
    op.drop_index("idx_blocked_time_ranges_dates", table_name="blocked_time_ranges")
    op.drop_table("blocked_time_ranges")
    op.drop_index("idx_notifications_source_read", table_name="notifications")
    op.drop_index("idx_notifications_created_at", table_name="notifications")
    op.drop_index("idx_notifications_source_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_appointments_status", table_name="appointments")
    op.drop_index("idx_appointments_patient_id", table_name="appointments")
    op.drop_index("uq_appointments_active_slot", table_name="appointments")
    op.drop_table("appointments")

"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from clinic_scheduler.models.base import metadata

ACTIVE_SLOT_PREDICATE = text("status <> 'Cancelled'")

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("appointment_number", String(20), nullable=False, unique=True),
    # Ownership / references
    Column("patient_id", Uuid, nullable=True),
    # Subject demographics
    Column("first_name", String(50), nullable=False),
    Column("last_name", String(50), nullable=False),
    Column("middle_name", String(50), nullable=True),
    Column("birthdate", Date, nullable=False),
    Column("sex", String(10), nullable=False),
    Column("height", Float, nullable=True),
    Column("weight", Float, nullable=True),
    Column("religion", String(30), nullable=True),
    Column("mother_info", JSON, nullable=True),
    Column("father_info", JSON, nullable=True),
    # Slot
    Column("preferred_date", Date, nullable=False),
    Column("preferred_time", String(5), nullable=False),
    Column("reason_for_visit", Text, nullable=False),
    # Contact
    Column("contact_number", String(20), nullable=True),
    Column("address", Text, nullable=True),
    # Status management
    Column("status", String(20), nullable=False, server_default="Pending"),
    Column("source", String(20), nullable=False, server_default="patient_app"),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('Pending', 'Scheduled', 'Completed', 'Cancelled', 'Rebooked')",
        name="appointments_status_check",
    ),
    CheckConstraint("sex IN ('Male', 'Female')", name="appointments_sex_check"),
    # One active appointment per slot; cancelled rows do not hold the slot
    Index(
        "uq_appointments_active_slot",
        "preferred_date",
        "preferred_time",
        unique=True,
        postgresql_where=ACTIVE_SLOT_PREDICATE,
        sqlite_where=ACTIVE_SLOT_PREDICATE,
    ),
    Index("idx_appointments_patient_id", "patient_id"),
    Index("idx_appointments_status", "status"),
)

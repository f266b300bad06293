"""Notification model for the in-app notification feed."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
)

from clinic_scheduler.models.base import metadata

notifications = Table(
    "notifications",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Who triggered the notification
    Column("source_id", Uuid, nullable=True),
    Column("source_type", String(20), nullable=False, server_default="System"),
    Column("type", String(50), nullable=False),
    # What it is about
    Column("entity_id", Uuid, nullable=True),
    Column("entity_type", String(20), nullable=True),
    Column("message", Text, nullable=False),
    Column("is_read", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "source_type IN ('Patient', 'Doctor', 'Secretary', 'System')",
        name="notifications_source_type_check",
    ),
    CheckConstraint(
        "type IN ('AppointmentReminder', 'AppointmentCreated', 'AppointmentUpdated', "
        "'AppointmentCancelled', 'PatientCreated', 'MedicalRecordUpdated', "
        "'LowStock', 'ExpiredItem')",
        name="notifications_type_check",
    ),
    CheckConstraint(
        "entity_type IS NULL OR entity_type IN "
        "('Appointment', 'Patient', 'MedicalRecord', 'Inventory')",
        name="notifications_entity_type_check",
    ),
    UniqueConstraint(
        "source_id", "entity_id", "type", "entity_type", name="unique_notification_event"
    ),
    Index("idx_notifications_source_id", "source_id"),
    Index("idx_notifications_created_at", "created_at"),
    Index("idx_notifications_source_read", "source_id", "is_read"),
)

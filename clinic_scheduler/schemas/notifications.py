"""Notification schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Kinds of events that produce a notification."""

    APPOINTMENT_REMINDER = "AppointmentReminder"
    APPOINTMENT_CREATED = "AppointmentCreated"
    APPOINTMENT_UPDATED = "AppointmentUpdated"
    APPOINTMENT_CANCELLED = "AppointmentCancelled"
    PATIENT_CREATED = "PatientCreated"
    MEDICAL_RECORD_UPDATED = "MedicalRecordUpdated"
    LOW_STOCK = "LowStock"
    EXPIRED_ITEM = "ExpiredItem"


class SourceType(str, Enum):
    """Who triggered the notification."""

    PATIENT = "Patient"
    DOCTOR = "Doctor"
    SECRETARY = "Secretary"
    SYSTEM = "System"


class EntityType(str, Enum):
    """What the notification refers to."""

    APPOINTMENT = "Appointment"
    PATIENT = "Patient"
    MEDICAL_RECORD = "MedicalRecord"
    INVENTORY = "Inventory"


class NotificationCreate(BaseModel):
    """Schema for creating a notification."""

    source_id: UUID | None = None
    source_type: SourceType = SourceType.SYSTEM
    type: NotificationType
    entity_id: UUID | None = None
    entity_type: EntityType | None = None
    message: str = Field(..., min_length=1, max_length=500)


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    id: UUID
    source_id: UUID | None
    source_type: SourceType
    type: NotificationType
    entity_id: UUID | None
    entity_type: EntityType | None
    message: str
    is_read: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Paginated notifications with the unread count for the same filter."""

    total: int
    page: int
    pages: int
    unread_count: int
    items: list[NotificationResponse]


class MarkAllReadResponse(BaseModel):
    """Schema for bulk read response."""

    updated: int

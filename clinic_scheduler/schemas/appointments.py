"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clinic_scheduler.core.clock import get_clock
from clinic_scheduler.core.contact import parse_phone
from clinic_scheduler.schemas.sms import SmsResult

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REBOOKED = "Rebooked"


class AppointmentSource(str, Enum):
    """Appointment source enumeration."""

    PATIENT_APP = "patient_app"
    DOCTOR_APP = "doctor_app"
    ADMIN_PANEL = "admin_panel"
    API = "api"


class Sex(str, Enum):
    """Sex of the booking subject."""

    MALE = "Male"
    FEMALE = "Female"


class ParentInfo(BaseModel):
    """Mother or father details recorded for pediatric visits."""

    name: str | None = Field(None, max_length=100)
    age: int | None = Field(None, ge=0, le=150)
    occupation: str | None = Field(None, max_length=100)

    @field_validator("name", "occupation")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace, treating blank as unset."""
        if v is None:
            return None
        return v.strip() or None

    @property
    def is_empty(self) -> bool:
        """True when none of the three fields is set."""
        return not (self.name or self.age or self.occupation)


def _validate_reason(v: str) -> str:
    cleaned = v.strip()
    if not 5 <= len(cleaned) <= 200:
        raise ValueError("Reason for visit must be between 5 and 200 characters")
    return cleaned


def _strip_text(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


def _blank_to_none(v: Any) -> Any:
    v = _strip_text(v)
    return v or None


def _validate_birthdate(v: date) -> date:
    # Clinic calendar date, not the host's
    today = get_clock().now().date()
    if v > today:
        raise ValueError("Birth date cannot be in the future")
    if (today - v).days / 365.25 > 150:
        raise ValueError("Birth date seems unrealistic")
    return v


class AppointmentBase(BaseModel):
    """Base appointment schema with common fields."""

    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    middle_name: str | None = Field(None, max_length=50)
    birthdate: date
    sex: Sex
    height: float | None = Field(None, ge=30, le=300)
    weight: float | None = Field(None, ge=1, le=500)
    religion: str | None = Field(None, max_length=30)
    mother_info: ParentInfo | None = None
    father_info: ParentInfo | None = None
    preferred_date: date
    preferred_time: str = Field(..., pattern=TIME_PATTERN)
    reason_for_visit: str
    contact_number: str | None = None
    address: str | None = Field(None, max_length=200)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v: Any) -> Any:
        """Trim names before the length check runs."""
        return _strip_text(v)

    @field_validator("middle_name", "religion", "address", mode="before")
    @classmethod
    def strip_optional_text(cls, v: Any) -> Any:
        """Trim optional text, treating blank as unset."""
        return _blank_to_none(v)


class AppointmentCreate(AppointmentBase):
    """Schema for creating a new appointment."""

    patient_id: UUID | None = None
    source: AppointmentSource = AppointmentSource.PATIENT_APP

    @field_validator("reason_for_visit")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Trim and check reason length."""
        return _validate_reason(v)

    @field_validator("birthdate")
    @classmethod
    def validate_birthdate(cls, v: date) -> date:
        """Reject future and implausible birth dates."""
        return _validate_birthdate(v)

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v: str | None) -> str | None:
        """Validate mobile number format."""
        if v is None:
            return None
        return parse_phone(v).value


class AppointmentUpdate(BaseModel):
    """
    Partial update of an appointment.

    Only fields present and not null in the request are applied; parent info
    is merged field by field into the stored substructure.
    """

    patient_id: UUID | None = None
    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    middle_name: str | None = Field(None, max_length=50)
    birthdate: date | None = None
    sex: Sex | None = None
    height: float | None = Field(None, ge=30, le=300)
    weight: float | None = Field(None, ge=1, le=500)
    religion: str | None = Field(None, max_length=30)
    mother_info: ParentInfo | None = None
    father_info: ParentInfo | None = None
    preferred_date: date | None = None
    preferred_time: str | None = Field(None, pattern=TIME_PATTERN)
    reason_for_visit: str | None = None
    contact_number: str | None = None
    address: str | None = Field(None, max_length=200)
    status: AppointmentStatus | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v: Any) -> Any:
        """Trim names before the length check runs."""
        return _strip_text(v)

    @field_validator("middle_name", "religion", "address", mode="before")
    @classmethod
    def strip_optional_text(cls, v: Any) -> Any:
        """Trim optional text; blank counts as not supplied."""
        return _blank_to_none(v)

    @field_validator("reason_for_visit")
    @classmethod
    def validate_reason(cls, v: str | None) -> str | None:
        """Trim and check reason length."""
        return None if v is None else _validate_reason(v)

    @field_validator("birthdate")
    @classmethod
    def validate_birthdate(cls, v: date | None) -> date | None:
        """Reject future and implausible birth dates."""
        return None if v is None else _validate_birthdate(v)

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v: str | None) -> str | None:
        """Validate mobile number format."""
        return None if v is None else parse_phone(v).value

    def changes(self) -> dict[str, Any]:
        """Fields supplied with a value, as plain column values."""
        values: dict[str, Any] = {}
        for field, value in self.model_dump(exclude_unset=True, mode="python").items():
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            values[field] = value
        return values


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class AppointmentResponse(AppointmentBase):
    """Schema for appointment response."""

    id: UUID
    appointment_number: str
    patient_id: UUID | None
    reason_for_visit: str
    contact_number: str | None = None
    status: AppointmentStatus
    source: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentUpdateResponse(BaseModel):
    """Updated appointment plus the outcome of any status SMS."""

    appointment: AppointmentResponse
    sms_result: SmsResult | None = None


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    total_pages: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    patient_id: UUID | None = None
    from_date: date | None = None
    to_date: date | None = None
    search: str | None = Field(None, max_length=100)
    sort_by: Literal[
        "created_at", "preferred_date", "preferred_time", "first_name", "last_name", "status"
    ] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)

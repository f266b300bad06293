"""Blocked time range schemas."""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class BlockReason(str, Enum):
    """Why the clinic is closed for a range of dates."""

    DOCTOR_UNAVAILABLE = "Doctor Unavailable"
    HOLIDAY = "Holiday"
    MAINTENANCE = "Maintenance"
    EMERGENCY = "Emergency"
    MEETING = "Meeting"
    TRAINING = "Training"
    OTHER = "Other"


class BlockedTimeRangeCreate(BaseModel):
    """Schema for creating a blocked time range."""

    start_date: date
    end_date: date
    reason: BlockReason | None = None
    custom_reason: str | None = Field(None, max_length=100)
    created_by: UUID | None = None
    is_active: bool = True

    @model_validator(mode="after")
    def validate_dates(self) -> "BlockedTimeRangeCreate":
        """End date must be on or after start date; "Other" needs a custom reason."""
        if self.end_date < self.start_date:
            raise ValueError("End date must be after or equal to start date")
        if self.reason == BlockReason.OTHER and not (self.custom_reason or "").strip():
            raise ValueError("A custom reason is required when the reason is Other")
        return self


class BlockedTimeRangeUpdate(BaseModel):
    """Schema for updating a blocked time range."""

    start_date: date | None = None
    end_date: date | None = None
    reason: BlockReason | None = None
    custom_reason: str | None = Field(None, max_length=100)
    is_active: bool | None = None

    def changes(self) -> dict[str, Any]:
        """Fields supplied with a value, as plain column values."""
        values: dict[str, Any] = {}
        for field, value in self.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            values[field] = value.value if isinstance(value, Enum) else value
        return values


class BlockedTimeRangeResponse(BaseModel):
    """Schema for blocked time range response."""

    id: UUID
    start_date: date
    end_date: date
    reason: BlockReason | None
    custom_reason: str | None
    created_by: UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BlockedTimeRangeListResponse(BaseModel):
    """Schema for paginated blocked time range list."""

    total: int
    page: int
    page_size: int
    items: list[BlockedTimeRangeResponse]

"""Time slot availability schemas."""

from datetime import date
from typing import Literal

from pydantic import BaseModel

from clinic_scheduler.schemas.appointments import AppointmentResponse


class SlotStatusResponse(BaseModel):
    """One catalog slot and whether it can still be booked."""

    time: str
    time_12_hour: str
    label: str
    available: bool
    booked: bool
    passed: bool
    blocked: bool


class TimeSlotsResponse(BaseModel):
    """
    Appointments and open slots for a single date.

    ``cause`` tells a closed date apart: "blocked" for an admin block (see
    ``block_reason``), "fully_booked" when no slot is left. ``too_soon`` is
    reported separately because the lead-time rule is a booking rule, not a
    slot property.
    """

    date: date
    total_appointments: int
    available_time_slots: list[str]
    time_slots: dict[str, list[AppointmentResponse]]
    slots: list[SlotStatusResponse]
    blocked: bool
    block_reason: str | None = None
    cause: Literal["blocked", "fully_booked"] | None = None
    too_soon: bool
    earliest_bookable_date: date

"""Tests for the appointment lifecycle service."""

import asyncio
from datetime import date, datetime, timedelta

import httpx
import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_scheduler.config import settings
from clinic_scheduler.core.clock import FixedClock
from clinic_scheduler.core.exceptions import (
    InvalidStatusTransition,
    LeadTimeViolation,
    NotFoundException,
    SlotConflict,
)
from clinic_scheduler.models.notifications import notifications
from clinic_scheduler.schemas import appointments as appointment_schemas
from clinic_scheduler.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    ParentInfo,
)
from clinic_scheduler.services.appointment_service import AppointmentService


class FailingNotifier:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    async def send(self, destination, template_id, fields):
        self.calls += 1
        raise self.error


@pytest.fixture
def service(db_session: AsyncSession, clock: FixedClock, sms_notifier) -> AppointmentService:
    return AppointmentService(db_session, clock=clock, notifier=sms_notifier)


async def _count_notifications(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(notifications))
    return result.scalar()


async def _scheduled(service: AppointmentService, appointment_data: dict) -> AppointmentResponse:
    created = await service.create_appointment(AppointmentCreate(**appointment_data))
    result = await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.SCHEDULED)
    )
    return result.appointment


@pytest.mark.asyncio
async def test_create_appointment(
    service: AppointmentService, db_session: AsyncSession, appointment_data: dict
) -> None:
    """New bookings start Pending with a padded sequence number."""
    appointment = await service.create_appointment(AppointmentCreate(**appointment_data))

    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.appointment_number == "0001"
    assert appointment.preferred_time == "09:00"
    assert appointment.mother_info == ParentInfo(name="Ana Santos", age=34, occupation="Accountant")
    assert appointment.father_info is None
    assert await _count_notifications(db_session) == 1


@pytest.mark.asyncio
async def test_appointment_numbers_increase(
    service: AppointmentService, appointment_data: dict
) -> None:
    first = await service.create_appointment(AppointmentCreate(**appointment_data))
    second = await service.create_appointment(
        AppointmentCreate(**{**appointment_data, "preferred_time": "09:30"})
    )

    assert first.appointment_number == "0001"
    assert second.appointment_number == "0002"


@pytest.mark.asyncio
async def test_staff_booking_skips_notification(
    service: AppointmentService, db_session: AsyncSession, appointment_data: dict
) -> None:
    data = AppointmentCreate(**{**appointment_data, "source": "doctor_app"})

    await service.create_appointment(data)

    assert await _count_notifications(db_session) == 0


@pytest.mark.asyncio
async def test_create_too_soon(service: AppointmentService, appointment_data: dict) -> None:
    data = AppointmentCreate(**{**appointment_data, "preferred_date": "2026-03-03"})

    with pytest.raises(LeadTimeViolation):
        await service.create_appointment(data)


@pytest.mark.asyncio
async def test_create_conflict(service: AppointmentService, appointment_data: dict) -> None:
    await service.create_appointment(AppointmentCreate(**appointment_data))

    with pytest.raises(SlotConflict):
        await service.create_appointment(
            AppointmentCreate(**{**appointment_data, "first_name": "Pedro"})
        )


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_rebooked(
    service: AppointmentService, appointment_data: dict
) -> None:
    first = await service.create_appointment(AppointmentCreate(**appointment_data))
    await service.update_appointment_status(
        first.id, AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED)
    )

    second = await service.create_appointment(
        AppointmentCreate(**{**appointment_data, "first_name": "Pedro"})
    )

    assert second.preferred_time == first.preferred_time
    assert second.status == AppointmentStatus.PENDING


@pytest.mark.asyncio
async def test_concurrent_bookings_for_same_slot(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FixedClock,
    sms_notifier,
    appointment_data: dict,
) -> None:
    """Exactly one of two simultaneous requests for a slot succeeds."""

    async def book(first_name: str):
        async with session_factory() as session:
            service = AppointmentService(session, clock=clock, notifier=sms_notifier)
            return await service.create_appointment(
                AppointmentCreate(**{**appointment_data, "first_name": first_name})
            )

    results = await asyncio.gather(book("Maria"), book("Pedro"), return_exceptions=True)

    created = [r for r in results if isinstance(r, AppointmentResponse)]
    conflicts = [r for r in results if isinstance(r, SlotConflict)]
    assert len(created) == 1
    assert len(conflicts) == 1

    async with session_factory() as session:
        service = AppointmentService(session, clock=clock, notifier=sms_notifier)
        listing = await service.list_appointments(AppointmentFilters())
    assert listing.total == 1


@pytest.mark.asyncio
async def test_status_change_sends_one_sms(
    service: AppointmentService, sms_notifier, appointment_data: dict
) -> None:
    created = await service.create_appointment(AppointmentCreate(**appointment_data))

    result = await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.SCHEDULED)
    )

    assert result.appointment.status == AppointmentStatus.SCHEDULED
    assert result.sms_result is not None
    assert result.sms_result.success
    assert len(sms_notifier.calls) == 1
    call = sms_notifier.calls[0]
    assert call["destination"] == "09171234567"
    assert call["template_id"] == "scheduled"
    assert call["fields"]["patientName"] == "Maria Santos"
    assert call["fields"]["appointmentNumber"] == "0001"
    assert call["fields"]["preferredDate"] == "March 4, 2026"
    assert call["fields"]["preferredTime"] == "9:00 AM"


@pytest.mark.asyncio
async def test_same_status_sends_no_sms(
    service: AppointmentService, sms_notifier, appointment_data: dict
) -> None:
    appointment = await _scheduled(service, appointment_data)
    sms_notifier.calls.clear()

    result = await service.update_appointment_status(
        appointment.id, AppointmentStatusUpdate(status=AppointmentStatus.SCHEDULED)
    )

    assert result.sms_result is None
    assert sms_notifier.calls == []


@pytest.mark.asyncio
async def test_status_without_template(
    service: AppointmentService, sms_notifier, appointment_data: dict
) -> None:
    appointment = await _scheduled(service, appointment_data)
    sms_notifier.calls.clear()

    result = await service.update_appointment_status(
        appointment.id, AppointmentStatusUpdate(status=AppointmentStatus.PENDING)
    )

    assert result.appointment.status == AppointmentStatus.PENDING
    assert result.sms_result.success is False
    assert result.sms_result.reason == "no_template"
    assert sms_notifier.calls == []


@pytest.mark.asyncio
async def test_missing_contact_number_skips_sms(
    service: AppointmentService, sms_notifier, appointment_data: dict
) -> None:
    created = await service.create_appointment(
        AppointmentCreate(**{**appointment_data, "contact_number": None})
    )

    result = await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.SCHEDULED)
    )

    assert result.sms_result is None
    assert sms_notifier.calls == []


@pytest.mark.asyncio
async def test_sms_transport_error_does_not_fail_update(
    db_session: AsyncSession, clock: FixedClock, appointment_data: dict
) -> None:
    notifier = FailingNotifier(httpx.ConnectError("connection refused"))
    service = AppointmentService(db_session, clock=clock, notifier=notifier)
    created = await service.create_appointment(AppointmentCreate(**appointment_data))

    result = await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED)
    )

    assert notifier.calls == 1
    assert result.appointment.status == AppointmentStatus.COMPLETED
    assert result.sms_result.reason == "unexpected_error"
    stored = await service.get_appointment(created.id)
    assert stored.status == AppointmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_unexpected_hook_error_is_contained(
    db_session: AsyncSession, clock: FixedClock, appointment_data: dict
) -> None:
    service = AppointmentService(
        db_session, clock=clock, notifier=FailingNotifier(RuntimeError("boom"))
    )
    created = await service.create_appointment(AppointmentCreate(**appointment_data))

    result = await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED)
    )

    assert result.appointment.status == AppointmentStatus.CANCELLED
    assert result.sms_result is None


@pytest.mark.asyncio
async def test_full_update_merges_parent_info(
    service: AppointmentService, sms_notifier, appointment_data: dict
) -> None:
    created = await service.create_appointment(AppointmentCreate(**appointment_data))

    result = await service.update_appointment(
        created.id,
        AppointmentUpdate(
            mother_info=ParentInfo(occupation="Nurse"),
            father_info=ParentInfo(name="Jose Santos"),
            address="45 Rizal Ave, Manila",
        ),
    )

    appointment = result.appointment
    assert appointment.mother_info == ParentInfo(name="Ana Santos", age=34, occupation="Nurse")
    assert appointment.father_info == ParentInfo(name="Jose Santos")
    assert appointment.address == "45 Rizal Ave, Manila"
    assert appointment.first_name == "Maria"
    assert result.sms_result is None
    assert sms_notifier.calls == []


@pytest.mark.asyncio
async def test_update_ignores_null_fields(
    service: AppointmentService, appointment_data: dict
) -> None:
    created = await service.create_appointment(AppointmentCreate(**appointment_data))

    result = await service.update_appointment(
        created.id, AppointmentUpdate(address=None, religion="Catholic")
    )

    assert result.appointment.address == appointment_data["address"]
    assert result.appointment.religion == "Catholic"


@pytest.mark.asyncio
async def test_update_into_taken_slot(service: AppointmentService, appointment_data: dict) -> None:
    await service.create_appointment(AppointmentCreate(**appointment_data))
    other = await service.create_appointment(
        AppointmentCreate(**{**appointment_data, "preferred_time": "10:00"})
    )

    with pytest.raises(SlotConflict):
        await service.update_appointment(other.id, AppointmentUpdate(preferred_time="09:00"))


@pytest.mark.asyncio
async def test_status_is_permissive_by_default(
    service: AppointmentService, appointment_data: dict
) -> None:
    created = await service.create_appointment(AppointmentCreate(**appointment_data))
    await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED)
    )

    result = await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.PENDING)
    )

    assert result.appointment.status == AppointmentStatus.PENDING


@pytest.mark.asyncio
async def test_strict_transitions(
    service: AppointmentService, appointment_data: dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "strict_status_transitions", True)
    created = await service.create_appointment(AppointmentCreate(**appointment_data))

    with pytest.raises(InvalidStatusTransition):
        await service.update_appointment_status(
            created.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED)
        )

    await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.SCHEDULED)
    )
    result = await service.update_appointment_status(
        created.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED)
    )
    assert result.appointment.status == AppointmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_delete_appointment(service: AppointmentService, appointment_data: dict) -> None:
    created = await service.create_appointment(AppointmentCreate(**appointment_data))

    deleted = await service.delete_appointment(created.id)

    assert deleted.id == created.id
    with pytest.raises(NotFoundException):
        await service.get_appointment(created.id)
    with pytest.raises(NotFoundException):
        await service.delete_appointment(created.id)


@pytest.mark.asyncio
async def test_get_time_slots(
    service: AppointmentService, appointment_data: dict, today: date
) -> None:
    await service.create_appointment(AppointmentCreate(**appointment_data))
    cancelled = await service.create_appointment(
        AppointmentCreate(**{**appointment_data, "preferred_time": "13:30"})
    )
    await service.update_appointment_status(
        cancelled.id, AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED)
    )

    result = await service.get_time_slots(date(2026, 3, 4))

    assert result.total_appointments == 2
    assert set(result.time_slots) == {"09:00", "13:30"}
    assert len(result.available_time_slots) == 17
    assert "09:00" not in result.available_time_slots
    assert "13:30" in result.available_time_slots
    assert result.cause is None
    assert result.too_soon is False
    assert result.earliest_bookable_date == today + timedelta(days=2)


@pytest.mark.asyncio
async def test_get_time_slots_today_marks_passed(
    service: AppointmentService, today: date
) -> None:
    result = await service.get_time_slots(today)

    by_time = {slot.time: slot for slot in result.slots}
    assert by_time["09:30"].passed
    assert by_time["10:30"].available
    assert result.available_time_slots[0] == "10:30"
    assert result.too_soon is True


@pytest.mark.asyncio
async def test_get_time_slots_blocked(
    service: AppointmentService, block_dates, today: date
) -> None:
    day = today + timedelta(days=7)
    await block_dates(day, reason="Other", custom_reason="Medical mission")

    result = await service.get_time_slots(day)

    assert result.blocked
    assert result.cause == "blocked"
    assert result.block_reason == "Medical mission"
    assert result.available_time_slots == []


@pytest.mark.asyncio
async def test_list_appointments_filters(
    service: AppointmentService, appointment_data: dict
) -> None:
    await service.create_appointment(AppointmentCreate(**appointment_data))
    await service.create_appointment(
        AppointmentCreate(
            **{
                **appointment_data,
                "first_name": "Pedro",
                "last_name": "Garcia",
                "preferred_date": "2026-03-10",
                "reason_for_visit": "Vaccination schedule",
            }
        )
    )

    by_name = await service.list_appointments(AppointmentFilters(search="garcia"))
    assert by_name.total == 1
    assert by_name.items[0].first_name == "Pedro"

    by_date = await service.list_appointments(
        AppointmentFilters(from_date=date(2026, 3, 5), to_date=date(2026, 3, 31))
    )
    assert [item.first_name for item in by_date.items] == ["Pedro"]

    sorted_asc = await service.list_appointments(
        AppointmentFilters(sort_by="preferred_date", sort_order="asc", page_size=1)
    )
    assert sorted_asc.total == 2
    assert sorted_asc.total_pages == 2
    assert sorted_asc.items[0].first_name == "Maria"


def test_names_are_trimmed_before_length_check(appointment_data: dict) -> None:
    data = AppointmentCreate(
        **{**appointment_data, "first_name": "  Juan ", "middle_name": "   ", "religion": " "}
    )
    assert data.first_name == "Juan"
    assert data.middle_name is None
    assert data.religion is None

    with pytest.raises(ValidationError):
        AppointmentCreate(**{**appointment_data, "first_name": " A "})

    with pytest.raises(ValidationError):
        AppointmentUpdate(last_name="  B  ")


def test_birthdate_checked_against_clinic_date(
    monkeypatch: pytest.MonkeyPatch, clock: FixedClock, today: date, appointment_data: dict
) -> None:
    monkeypatch.setattr(appointment_schemas, "get_clock", lambda: clock)

    born_today = AppointmentCreate(**{**appointment_data, "birthdate": today.isoformat()})
    assert born_today.birthdate == today

    tomorrow = (today + timedelta(days=1)).isoformat()
    with pytest.raises(ValidationError, match="future"):
        AppointmentCreate(**{**appointment_data, "birthdate": tomorrow})
    with pytest.raises(ValidationError, match="future"):
        AppointmentUpdate(birthdate=tomorrow)


@pytest.mark.asyncio
async def test_send_reminders_for_scheduled_appointments(
    service: AppointmentService, sms_notifier, appointment_data: dict
) -> None:
    await _scheduled(service, appointment_data)
    await _scheduled(
        service, {**appointment_data, "preferred_time": "10:30", "first_name": "Pedro"}
    )
    # Still pending, and on another day: neither gets a reminder
    await service.create_appointment(
        AppointmentCreate(**{**appointment_data, "preferred_time": "14:00"})
    )
    await _scheduled(service, {**appointment_data, "preferred_date": "2026-03-05"})
    sms_notifier.calls.clear()

    summary = await service.send_reminders(date(2026, 3, 4))

    assert summary.date == date(2026, 3, 4)
    assert (summary.total, summary.sent, summary.failed) == (2, 2, 0)
    assert [call["template_id"] for call in sms_notifier.calls] == ["reminder", "reminder"]
    first = sms_notifier.calls[0]["fields"]
    assert first["patientName"] == "Maria Santos"
    assert first["preferredDate"] == "March 4, 2026"
    assert first["preferredTime"] == "9:00 AM"
    assert sms_notifier.calls[1]["fields"]["patientName"] == "Pedro Santos"


@pytest.mark.asyncio
async def test_send_reminders_defaults_to_tomorrow(
    db_session: AsyncSession, service: AppointmentService, sms_notifier, appointment_data: dict
) -> None:
    await _scheduled(service, appointment_data)
    sms_notifier.calls.clear()

    day_before = AppointmentService(
        db_session, clock=FixedClock(datetime(2026, 3, 3, 9, 0)), notifier=sms_notifier
    )
    summary = await day_before.send_reminders()

    assert summary.date == date(2026, 3, 4)
    assert summary.sent == 1
    assert sms_notifier.calls[0]["destination"] == "09171234567"


@pytest.mark.asyncio
async def test_send_reminders_counts_failures(
    db_session: AsyncSession, clock: FixedClock, appointment_data: dict
) -> None:
    notifier = FailingNotifier(httpx.ConnectError("connection refused"))
    service = AppointmentService(db_session, clock=clock, notifier=notifier)
    await _scheduled(service, appointment_data)
    await _scheduled(
        service, {**appointment_data, "preferred_time": "10:00", "contact_number": None}
    )
    notifier.calls = 0

    summary = await service.send_reminders(date(2026, 3, 4))

    assert (summary.total, summary.sent, summary.failed) == (2, 0, 2)
    # The appointment without a number is never handed to the notifier
    assert notifier.calls == 1


@pytest.mark.asyncio
async def test_send_reminders_with_nothing_scheduled(
    service: AppointmentService, sms_notifier
) -> None:
    summary = await service.send_reminders(date(2026, 3, 4))

    assert (summary.total, summary.sent, summary.failed) == (0, 0, 0)
    assert sms_notifier.calls == []

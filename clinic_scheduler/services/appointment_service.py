"""Appointment service for business logic."""

import math
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime, timedelta
from typing import Any
from uuid import UUID

import httpx
import structlog
from sqlalchemy import and_, delete, func, insert, or_, select, true, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.config import settings
from clinic_scheduler.core.clock import Clock, get_clock
from clinic_scheduler.core.exceptions import (
    InvalidStatusTransition,
    NotFoundException,
    SlotConflict,
    ValidationException,
)
from clinic_scheduler.models.appointments import appointments
from clinic_scheduler.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentSource,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AppointmentUpdateResponse,
    ParentInfo,
)
from clinic_scheduler.schemas.availability import SlotStatusResponse, TimeSlotsResponse
from clinic_scheduler.schemas.sms import ReminderRunSummary, SmsResult
from clinic_scheduler.services.availability import AvailabilityEngine
from clinic_scheduler.services.blocked_time_range_service import BlockedTimeRangeService
from clinic_scheduler.services.booking_guard import BookingGuard
from clinic_scheduler.services.notification_service import NotificationService
from clinic_scheduler.services.sequence_service import SequenceAllocator
from clinic_scheduler.services.sms_service import SmsNotifier, get_sms_notifier
from clinic_scheduler.services.time_slots import TimeSlotCatalog, to_12_hour

logger = structlog.get_logger(__name__)

APPOINTMENT_SEQUENCE = "appointment"
REMINDER_TEMPLATE = "reminder"

STATUS_SMS_TEMPLATES: dict[str, str] = {
    AppointmentStatus.SCHEDULED.value: "scheduled",
    AppointmentStatus.COMPLETED.value: "completed",
    AppointmentStatus.CANCELLED.value: "cancelled",
    AppointmentStatus.REBOOKED.value: "rebooked",
}

# Only enforced when STRICT_STATUS_TRANSITIONS is on
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    AppointmentStatus.PENDING.value: {
        AppointmentStatus.SCHEDULED.value,
        AppointmentStatus.CANCELLED.value,
        AppointmentStatus.REBOOKED.value,
    },
    AppointmentStatus.SCHEDULED.value: {
        AppointmentStatus.COMPLETED.value,
        AppointmentStatus.CANCELLED.value,
        AppointmentStatus.REBOOKED.value,
    },
    AppointmentStatus.COMPLETED.value: set(),
    AppointmentStatus.CANCELLED.value: set(),
    AppointmentStatus.REBOOKED.value: {
        AppointmentStatus.SCHEDULED.value,
        AppointmentStatus.CANCELLED.value,
        AppointmentStatus.COMPLETED.value,
    },
}

SORT_COLUMNS = {
    "created_at": appointments.c.created_at,
    "preferred_date": appointments.c.preferred_date,
    "preferred_time": appointments.c.preferred_time,
    "first_name": appointments.c.first_name,
    "last_name": appointments.c.last_name,
    "status": appointments.c.status,
}

PostCommitHook = Callable[[], Awaitable[Any]]


class PostCommitHooks:
    """
    Side effects that run after a write has been committed.

    A failing hook is logged and yields None; it never reaches the caller
    of the write.
    """

    def __init__(self) -> None:
        self._hooks: list[tuple[str, PostCommitHook]] = []

    def add(self, name: str, hook: PostCommitHook) -> None:
        self._hooks.append((name, hook))

    async def run(self) -> dict[str, Any]:
        results: dict[str, Any] = {}
        for name, hook in self._hooks:
            try:
                results[name] = await hook()
            except Exception as e:
                logger.exception("post_commit_hook_failed", hook=name, error=str(e))
                results[name] = None
        return results


def _is_slot_violation(exc: IntegrityError) -> bool:
    """Whether the integrity error came from the active-slot unique index."""
    detail = str(exc.orig)
    return "uq_appointments_active_slot" in detail or "appointments.preferred_date" in detail


def _parent_info(info: ParentInfo | None) -> dict[str, Any] | None:
    if info is None or info.is_empty:
        return None
    return info.model_dump()


def _long_date(day: date) -> str:
    return f"{day:%B} {day.day}, {day.year}"


def _sms_fields(appointment: dict[str, Any]) -> dict[str, str]:
    return {
        "patientName": f"{appointment['first_name']} {appointment['last_name']}",
        "appointmentNumber": appointment["appointment_number"],
        "preferredDate": _long_date(appointment["preferred_date"]),
        "preferredTime": to_12_hour(appointment["preferred_time"]),
        "reasonForVisit": appointment["reason_for_visit"],
        "status": appointment["status"],
    }


def _merge_parent_info(
    current: dict[str, Any] | None,
    patch: dict[str, Any],
) -> dict[str, Any] | None:
    merged = dict(current or {})
    merged.update({key: value for key, value in patch.items() if value is not None})
    return merged if any(merged.values()) else None


class AppointmentService:
    """Service for managing appointments."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock | None = None,
        notifier: SmsNotifier | None = None,
        catalog: TimeSlotCatalog | None = None,
    ):
        """Initialize service with database session and injectable collaborators."""
        self.db = db
        self.clock = clock or get_clock()
        self.notifier = notifier or get_sms_notifier()
        self.catalog = catalog or TimeSlotCatalog()
        self.guard = BookingGuard(db, self.clock, self.catalog)
        self.engine = AvailabilityEngine(self.catalog)

    async def create_appointment(
        self,
        data: AppointmentCreate,
        create_notification: bool | None = None,
    ) -> AppointmentResponse:
        """
        Book a new appointment in the Pending state.

        Args:
            data: Appointment creation data
            create_notification: Record an AppointmentCreated notification;
                defaults to True for bookings made from the patient app

        Returns:
            Created appointment

        Raises:
            ValidationException: If the time is not a bookable slot
            LeadTimeViolation: If the date is too soon
            DateBlocked: If the clinic is closed that date
            SlotConflict: If the slot is already taken
        """
        if create_notification is None:
            create_notification = data.source == AppointmentSource.PATIENT_APP

        await self.guard.validate_new_booking(data.preferred_date, data.preferred_time)

        appointment_number = await SequenceAllocator(self.db).next(APPOINTMENT_SEQUENCE)

        values = {
            "appointment_number": appointment_number,
            "patient_id": data.patient_id,
            "first_name": data.first_name,
            "last_name": data.last_name,
            "middle_name": data.middle_name,
            "birthdate": data.birthdate,
            "sex": data.sex.value,
            "height": data.height,
            "weight": data.weight,
            "religion": data.religion,
            "mother_info": _parent_info(data.mother_info),
            "father_info": _parent_info(data.father_info),
            "preferred_date": data.preferred_date,
            "preferred_time": data.preferred_time,
            "reason_for_visit": data.reason_for_visit,
            "contact_number": data.contact_number,
            "address": data.address,
            "status": AppointmentStatus.PENDING.value,
            "source": data.source.value,
        }

        stmt = insert(appointments).values(**values).returning(appointments)
        try:
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not _is_slot_violation(e):
                raise
            logger.info(
                "slot_conflict_on_insert",
                preferred_date=data.preferred_date.isoformat(),
                preferred_time=data.preferred_time,
            )
            raise SlotConflict(data.preferred_date, data.preferred_time) from e

        appointment = dict(row._mapping)
        logger.info(
            "appointment_created",
            appointment_id=str(appointment["id"]),
            appointment_number=appointment_number,
            preferred_date=data.preferred_date.isoformat(),
            preferred_time=data.preferred_time,
            source=data.source.value,
        )

        if create_notification:
            try:
                await NotificationService.create_appointment_notification(self.db, appointment)
            except Exception as e:
                # Log error but don't fail the request
                await self.db.rollback()
                logger.warning("failed_to_create_appointment_notification", error=str(e))

        return AppointmentResponse.model_validate(appointment)

    async def _get_row(self, appointment_id: UUID) -> Any:
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()
        if not row:
            raise NotFoundException("Appointment not found")
        return row

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        row = await self._get_row(appointment_id)
        return AppointmentResponse.model_validate(dict(row._mapping))

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering, search and pagination.

        Args:
            filters: Filter, sort and pagination parameters

        Returns:
            Paginated list of appointments
        """
        conditions = []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.from_date:
            conditions.append(appointments.c.preferred_date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.preferred_date <= filters.to_date)

        if filters.search:
            term = f"%{filters.search.strip()}%"
            conditions.append(
                or_(
                    appointments.c.first_name.ilike(term),
                    appointments.c.last_name.ilike(term),
                    appointments.c.reason_for_visit.ilike(term),
                    appointments.c.address.ilike(term),
                    appointments.c.appointment_number.ilike(term),
                    appointments.c.contact_number.like(f"{filters.search.strip()}%"),
                )
            )

        where = and_(true(), *conditions)

        count_stmt = select(func.count()).select_from(appointments).where(where)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        column = SORT_COLUMNS[filters.sort_by]
        order = column.asc() if filters.sort_order == "asc" else column.desc()
        offset = (filters.page - 1) * filters.page_size

        stmt = (
            select(appointments)
            .where(where)
            .order_by(order, appointments.c.appointment_number)
            .limit(filters.page_size)
            .offset(offset)
        )
        rows = (await self.db.execute(stmt)).fetchall()

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            total_pages=math.ceil(total / filters.page_size) if total else 0,
            items=[AppointmentResponse.model_validate(dict(row._mapping)) for row in rows],
        )

    async def get_time_slots(self, day: date) -> TimeSlotsResponse:
        """
        Appointments of a day grouped by time, plus which slots are still open.

        Cancelled appointments are listed but do not hold their slot.

        Args:
            day: Date to inspect

        Returns:
            Grouped appointments and slot availability
        """
        stmt = (
            select(appointments)
            .where(appointments.c.preferred_date == day)
            .order_by(appointments.c.preferred_time, appointments.c.created_at)
        )
        rows = (await self.db.execute(stmt)).fetchall()

        time_slots: dict[str, list[AppointmentResponse]] = {}
        booked: set[tuple[date, str]] = set()
        for row in rows:
            time_slots.setdefault(row.preferred_time, []).append(
                AppointmentResponse.model_validate(dict(row._mapping))
            )
            if row.status != AppointmentStatus.CANCELLED.value:
                booked.add((row.preferred_date, row.preferred_time))

        ranges = await BlockedTimeRangeService(self.db).active_ranges_covering(day)
        availability = self.engine.day_availability(day, booked, ranges, self.clock.now())
        earliest = self.guard.minimum_date()

        return TimeSlotsResponse(
            date=day,
            total_appointments=len(rows),
            available_time_slots=availability.available_slots,
            time_slots=time_slots,
            slots=[
                SlotStatusResponse(
                    time=slot.time,
                    time_12_hour=to_12_hour(slot.time),
                    label=slot.label,
                    available=slot.available,
                    booked=slot.booked,
                    passed=slot.passed,
                    blocked=slot.blocked,
                )
                for slot in availability.slots
            ],
            blocked=availability.blocked,
            block_reason=availability.block_reason,
            cause=availability.cause,
            too_soon=day < earliest,
            earliest_bookable_date=earliest,
        )

    def _check_transition(self, old_status: str, new_status: str) -> None:
        if not settings.strict_status_transitions or old_status == new_status:
            return
        if new_status not in ALLOWED_TRANSITIONS.get(old_status, set()):
            raise InvalidStatusTransition(old_status, new_status)

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
        is_status_update: bool = False,
    ) -> AppointmentUpdateResponse:
        """
        Update an existing appointment.

        A status-only update applies just ``status``; a full update applies
        every supplied field. Either way a status change sends the matching
        SMS after the write is committed.

        Args:
            appointment_id: Appointment ID
            data: Update data
            is_status_update: Apply only the status field

        Returns:
            Updated appointment and the SMS outcome, if one was attempted

        Raises:
            NotFoundException: If appointment not found
            ValidationException: If the new time is not a bookable slot
            SlotConflict: If the new date/time is held by another appointment
            InvalidStatusTransition: If strict transitions reject the change
        """
        current = await self._get_row(appointment_id)
        old_status = current.status

        if is_status_update:
            if data.status is None:
                raise ValidationException("Status is required")
            update_values: dict[str, Any] = {"status": data.status.value}
        else:
            update_values = data.changes()
            for key in ("mother_info", "father_info"):
                if key in update_values:
                    update_values[key] = _merge_parent_info(
                        getattr(current, key), update_values[key]
                    )
            if "preferred_time" in update_values:
                self.guard.check_slot(update_values["preferred_time"])

        if not update_values:
            # No changes, return current state
            return AppointmentUpdateResponse(
                appointment=AppointmentResponse.model_validate(dict(current._mapping))
            )

        new_status = update_values.get("status", old_status)
        self._check_transition(old_status, new_status)

        new_date = update_values.get("preferred_date", current.preferred_date)
        new_time = update_values.get("preferred_time", current.preferred_time)
        slot_touched = {"preferred_date", "preferred_time", "status"} & update_values.keys()
        if slot_touched and new_status != AppointmentStatus.CANCELLED.value:
            await self.guard.check_conflict(new_date, new_time, exclude_id=appointment_id)

        update_values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**update_values)
            .returning(appointments)
        )
        try:
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not _is_slot_violation(e):
                raise
            raise SlotConflict(new_date, new_time) from e

        appointment = dict(row._mapping)
        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            fields=sorted(k for k in update_values if k != "updated_at"),
            old_status=old_status,
            new_status=new_status,
        )

        hooks = PostCommitHooks()
        if old_status != new_status:
            hooks.add("sms", lambda: self._send_status_sms(appointment))
        results = await hooks.run()

        return AppointmentUpdateResponse(
            appointment=AppointmentResponse.model_validate(appointment),
            sms_result=results.get("sms"),
        )

    async def update_appointment_status(
        self,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentUpdateResponse:
        """Change only the status of an appointment."""
        return await self.update_appointment(
            appointment_id,
            AppointmentUpdate(status=data.status),
            is_status_update=True,
        )

    async def _send_status_sms(self, appointment: dict[str, Any]) -> SmsResult | None:
        """Text the patient about a new status; returns None when there is no number."""
        status = appointment["status"]
        template = STATUS_SMS_TEMPLATES.get(status)
        if template is None:
            logger.info("sms_no_template_for_status", status=status)
            return SmsResult(
                success=False,
                reason="no_template",
                message=f"No SMS template found for status: {status}",
            )

        destination = appointment.get("contact_number")
        if not destination:
            logger.info("sms_no_contact_number", appointment_id=str(appointment["id"]))
            return None

        try:
            result = await self.notifier.send(destination, template, _sms_fields(appointment))
        except httpx.HTTPError as e:
            logger.error(
                "sms_transport_error",
                appointment_id=str(appointment["id"]),
                error=str(e),
            )
            return SmsResult(
                success=False, reason="unexpected_error", message=str(e), template=template
            )

        logger.info(
            "status_sms_dispatched",
            appointment_number=appointment["appointment_number"],
            status=status,
            success=result.success,
            reason=result.reason,
        )
        return result

    async def send_reminders(self, day: date | None = None) -> ReminderRunSummary:
        """
        Text every patient with a Scheduled appointment on ``day``.

        Meant to run once a day from an external scheduler. Each appointment is
        attempted independently; a missing number, a rejected message or a
        transport error counts as a failure and the run carries on.

        Args:
            day: Appointment date; defaults to tomorrow in clinic time

        Returns:
            How many reminders were attempted, sent and failed
        """
        if day is None:
            day = self.clock.now().date() + timedelta(days=1)

        stmt = (
            select(appointments)
            .where(
                and_(
                    appointments.c.preferred_date == day,
                    appointments.c.status == AppointmentStatus.SCHEDULED.value,
                )
            )
            .order_by(appointments.c.preferred_time)
        )
        rows = (await self.db.execute(stmt)).fetchall()
        logger.info("appointment_reminders_started", date=day.isoformat(), count=len(rows))

        sent = failed = 0
        for row in rows:
            appointment = dict(row._mapping)
            number = appointment["appointment_number"]
            if not appointment["contact_number"]:
                logger.warning("reminder_no_contact_number", appointment_number=number)
                failed += 1
                continue

            try:
                result = await self.notifier.send(
                    appointment["contact_number"], REMINDER_TEMPLATE, _sms_fields(appointment)
                )
            except httpx.HTTPError as e:
                logger.error("reminder_transport_error", appointment_number=number, error=str(e))
                failed += 1
                continue

            if result.success:
                sent += 1
            else:
                logger.warning(
                    "reminder_failed",
                    appointment_number=number,
                    reason=result.reason,
                    error=result.message,
                )
                failed += 1

        logger.info(
            "appointment_reminders_completed",
            date=day.isoformat(),
            sent=sent,
            failed=failed,
        )
        return ReminderRunSummary(date=day, total=len(rows), sent=sent, failed=failed)

    async def delete_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Permanently delete an appointment.

        Returns:
            The deleted appointment

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = (
            delete(appointments)
            .where(appointments.c.id == appointment_id)
            .returning(appointments)
        )
        row = (await self.db.execute(stmt)).fetchone()
        if not row:
            await self.db.rollback()
            raise NotFoundException("Appointment not found")
        await self.db.commit()

        logger.info("appointment_deleted", appointment_id=str(appointment_id))
        return AppointmentResponse.model_validate(dict(row._mapping))

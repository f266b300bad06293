"""Notification service for the in-app notification feed."""

import math
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, select, true, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.core.exceptions import DuplicateNotification, NotFoundException
from clinic_scheduler.models.notifications import notifications
from clinic_scheduler.schemas.notifications import (
    EntityType,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
    NotificationType,
    SourceType,
)
from clinic_scheduler.services.time_slots import to_12_hour

logger = structlog.get_logger(__name__)


class NotificationService:
    """Service for creating and reading notifications."""

    @staticmethod
    async def find_existing(
        db: AsyncSession,
        source_id: UUID | None,
        entity_id: UUID | None,
        notification_type: NotificationType,
        entity_type: EntityType | None,
    ) -> Any | None:
        """
        Look up the notification for a (source, entity, type, entity type) tuple.

        Missing ids match missing ids, so walk-in bookings without an account
        still deduplicate.
        """
        stmt = select(notifications).where(
            and_(
                notifications.c.source_id.is_not_distinct_from(source_id),
                notifications.c.entity_id.is_not_distinct_from(entity_id),
                notifications.c.type == notification_type.value,
                notifications.c.entity_type.is_not_distinct_from(
                    entity_type.value if entity_type else None
                ),
            )
        )
        result = await db.execute(stmt)
        return result.first()

    @staticmethod
    async def _insert(db: AsyncSession, data: NotificationCreate) -> NotificationResponse:
        stmt = (
            insert(notifications)
            .values(
                source_id=data.source_id,
                source_type=data.source_type.value,
                type=data.type.value,
                entity_id=data.entity_id,
                entity_type=data.entity_type.value if data.entity_type else None,
                message=data.message,
                is_read=False,
            )
            .returning(notifications)
        )
        result = await db.execute(stmt)
        row = result.fetchone()
        await db.commit()
        return NotificationResponse.model_validate(dict(row._mapping))

    @staticmethod
    async def create(db: AsyncSession, data: NotificationCreate) -> NotificationResponse:
        """
        Create a notification.

        Args:
            db: Database session
            data: Notification data

        Returns:
            Created notification

        Raises:
            DuplicateNotification: If one already exists for the same event
        """
        existing = await NotificationService.find_existing(
            db, data.source_id, data.entity_id, data.type, data.entity_type
        )
        if existing:
            raise DuplicateNotification()

        try:
            return await NotificationService._insert(db, data)
        except IntegrityError:
            await db.rollback()
            raise DuplicateNotification() from None

    @staticmethod
    async def create_appointment_notification(
        db: AsyncSession,
        appointment: dict[str, Any],
    ) -> NotificationResponse | None:
        """
        Record that a patient requested an appointment.

        Idempotent: a second call for the same appointment is a no-op and
        returns None.

        Args:
            db: Database session
            appointment: Appointment row mapping

        Returns:
            The new notification, or None if it already existed
        """
        source_id = appointment.get("patient_id")
        entity_id = appointment["id"]
        existing = await NotificationService.find_existing(
            db,
            source_id,
            entity_id,
            NotificationType.APPOINTMENT_CREATED,
            EntityType.APPOINTMENT,
        )
        if existing:
            logger.debug("appointment_notification_exists", appointment_id=str(entity_id))
            return None

        name = " ".join(
            part for part in (appointment.get("first_name"), appointment.get("last_name")) if part
        )
        day = appointment["preferred_date"].strftime("%m/%d/%Y")
        at = to_12_hour(appointment["preferred_time"])
        message = f"New appointment request from {name or 'a patient'} for {day} at {at}."

        data = NotificationCreate(
            source_id=source_id,
            source_type=SourceType.PATIENT,
            type=NotificationType.APPOINTMENT_CREATED,
            entity_id=entity_id,
            entity_type=EntityType.APPOINTMENT,
            message=message,
        )
        try:
            notification = await NotificationService._insert(db, data)
        except IntegrityError:
            # Lost a race with an identical request
            await db.rollback()
            return None

        logger.info(
            "appointment_notification_created",
            appointment_id=str(entity_id),
            notification_id=str(notification.id),
        )
        return notification

    @staticmethod
    async def list_notifications(
        db: AsyncSession,
        source_id: UUID | None = None,
        is_read: bool | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> NotificationListResponse:
        """
        List notifications newest first.

        Args:
            db: Database session
            source_id: Only notifications triggered by this source
            is_read: Filter by read state
            page: Page number
            limit: Items per page

        Returns:
            Paginated notifications with unread count
        """
        conditions = []
        if source_id is not None:
            conditions.append(notifications.c.source_id == source_id)

        unread_stmt = (
            select(func.count())
            .select_from(notifications)
            .where(and_(true(), *conditions, notifications.c.is_read == False))  # noqa: E712
        )
        unread_count = (await db.execute(unread_stmt)).scalar() or 0

        if is_read is not None:
            conditions.append(notifications.c.is_read == is_read)

        where = and_(true(), *conditions)
        total = (
            await db.execute(select(func.count()).select_from(notifications).where(where))
        ).scalar() or 0

        stmt = (
            select(notifications)
            .where(where)
            .order_by(notifications.c.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        rows = (await db.execute(stmt)).fetchall()

        return NotificationListResponse(
            total=total,
            page=page,
            pages=math.ceil(total / limit) if total else 0,
            unread_count=unread_count,
            items=[NotificationResponse.model_validate(dict(row._mapping)) for row in rows],
        )

    @staticmethod
    async def mark_as_read(db: AsyncSession, notification_id: UUID) -> NotificationResponse:
        """Mark a single notification as read."""
        stmt = (
            update(notifications)
            .where(notifications.c.id == notification_id)
            .values(is_read=True, updated_at=datetime.now(UTC))
            .returning(notifications)
        )
        result = await db.execute(stmt)
        row = result.fetchone()
        if not row:
            await db.rollback()
            raise NotFoundException("Notification not found")
        await db.commit()
        return NotificationResponse.model_validate(dict(row._mapping))

    @staticmethod
    async def mark_all_as_read(db: AsyncSession, source_id: UUID | None = None) -> int:
        """Mark every unread notification (optionally of one source) as read."""
        stmt = update(notifications).where(notifications.c.is_read == False)  # noqa: E712
        if source_id is not None:
            stmt = stmt.where(notifications.c.source_id == source_id)
        result = await db.execute(stmt.values(is_read=True, updated_at=datetime.now(UTC)))
        await db.commit()
        return result.rowcount

    @staticmethod
    async def delete_notification(db: AsyncSession, notification_id: UUID) -> None:
        """Delete a notification."""
        stmt = delete(notifications).where(notifications.c.id == notification_id)
        result = await db.execute(stmt)
        if result.rowcount == 0:
            await db.rollback()
            raise NotFoundException("Notification not found")
        await db.commit()


"""Blocked time range service."""

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.core.exceptions import NotFoundException, ValidationException
from clinic_scheduler.models.blocked_time_ranges import blocked_time_ranges
from clinic_scheduler.schemas.blocked_time_ranges import (
    BlockedTimeRangeCreate,
    BlockedTimeRangeListResponse,
    BlockedTimeRangeResponse,
    BlockedTimeRangeUpdate,
)

logger = structlog.get_logger(__name__)


class BlockedTimeRangeService:
    """Service for managing dates on which the clinic takes no bookings."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def active_ranges_covering(self, start: date, end: date | None = None) -> list[Any]:
        """
        Active ranges overlapping ``start``..``end`` (inclusive, day granularity).

        Args:
            start: First date of the window
            end: Last date of the window, defaults to ``start``

        Returns:
            Matching rows ordered by start date
        """
        end = end or start
        stmt = (
            select(blocked_time_ranges)
            .where(
                and_(
                    blocked_time_ranges.c.is_active == True,  # noqa: E712
                    blocked_time_ranges.c.start_date <= end,
                    blocked_time_ranges.c.end_date >= start,
                )
            )
            .order_by(blocked_time_ranges.c.start_date)
        )
        result = await self.db.execute(stmt)
        return list(result.fetchall())

    async def create(self, data: BlockedTimeRangeCreate) -> BlockedTimeRangeResponse:
        """Create a blocked time range."""
        stmt = (
            insert(blocked_time_ranges)
            .values(
                start_date=data.start_date,
                end_date=data.end_date,
                reason=data.reason.value if data.reason else None,
                custom_reason=data.custom_reason,
                created_by=data.created_by,
                is_active=data.is_active,
            )
            .returning(blocked_time_ranges)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        await self.db.commit()

        logger.info(
            "blocked_time_range_created",
            blocked_time_range_id=str(row.id),
            start_date=row.start_date.isoformat(),
            end_date=row.end_date.isoformat(),
        )
        return BlockedTimeRangeResponse.model_validate(dict(row._mapping))

    async def get(self, blocked_time_range_id: UUID) -> BlockedTimeRangeResponse:
        """
        Get blocked time range by ID.

        Raises:
            NotFoundException: If it does not exist
        """
        stmt = select(blocked_time_ranges).where(blocked_time_ranges.c.id == blocked_time_range_id)
        row = (await self.db.execute(stmt)).fetchone()
        if not row:
            raise NotFoundException("Blocked time range not found")
        return BlockedTimeRangeResponse.model_validate(dict(row._mapping))

    async def list_blocked_time_ranges(
        self,
        is_active: bool | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> BlockedTimeRangeListResponse:
        """List blocked time ranges, optionally restricted to a date window."""
        conditions = []
        if is_active is not None:
            conditions.append(blocked_time_ranges.c.is_active == is_active)
        if from_date:
            conditions.append(blocked_time_ranges.c.end_date >= from_date)
        if to_date:
            conditions.append(blocked_time_ranges.c.start_date <= to_date)
        where = and_(true(), *conditions)

        count_stmt = select(func.count()).select_from(blocked_time_ranges).where(where)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(blocked_time_ranges)
            .where(where)
            .order_by(blocked_time_ranges.c.start_date.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        rows = (await self.db.execute(stmt)).fetchall()

        return BlockedTimeRangeListResponse(
            total=total,
            page=page,
            page_size=page_size,
            items=[BlockedTimeRangeResponse.model_validate(dict(row._mapping)) for row in rows],
        )

    async def update(
        self,
        blocked_time_range_id: UUID,
        data: BlockedTimeRangeUpdate,
    ) -> BlockedTimeRangeResponse:
        """
        Update a blocked time range.

        Raises:
            NotFoundException: If it does not exist
            ValidationException: If the resulting end date precedes the start date
        """
        current = await self.get(blocked_time_range_id)
        update_values = data.changes()
        if not update_values:
            return current

        start = update_values.get("start_date", current.start_date)
        end = update_values.get("end_date", current.end_date)
        if end < start:
            raise ValidationException("End date must be after or equal to start date")

        update_values["updated_at"] = datetime.now(UTC)
        stmt = (
            update(blocked_time_ranges)
            .where(blocked_time_ranges.c.id == blocked_time_range_id)
            .values(**update_values)
            .returning(blocked_time_ranges)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        await self.db.commit()
        return BlockedTimeRangeResponse.model_validate(dict(row._mapping))

    async def delete(self, blocked_time_range_id: UUID) -> BlockedTimeRangeResponse:
        """Delete a blocked time range and return what was removed."""
        stmt = (
            delete(blocked_time_ranges)
            .where(blocked_time_ranges.c.id == blocked_time_range_id)
            .returning(blocked_time_ranges)
        )
        row = (await self.db.execute(stmt)).fetchone()
        if not row:
            await self.db.rollback()
            raise NotFoundException("Blocked time range not found")
        await self.db.commit()

        logger.info("blocked_time_range_deleted", blocked_time_range_id=str(blocked_time_range_id))
        return BlockedTimeRangeResponse.model_validate(dict(row._mapping))

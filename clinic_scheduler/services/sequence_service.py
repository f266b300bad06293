"""Atomic allocation of zero-padded sequence numbers."""

import structlog
from sqlalchemy import insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.models.counters import counters

logger = structlog.get_logger(__name__)


class SequenceAllocator:
    """
    Hands out the next number for a named counter.

    The increment is a single ``UPDATE ... RETURNING`` so the store serializes
    concurrent callers on the counter row. Each allocation commits on its own:
    a number is consumed even if the record it was meant for is never saved,
    so numbers are never reused.
    """

    def __init__(self, db: AsyncSession, width: int = 4):
        """Initialize allocator with database session and zero-pad width."""
        self.db = db
        self.width = width

    async def _increment(self, key: str) -> int | None:
        stmt = (
            update(counters)
            .where(counters.c.key == key)
            .values(value=counters.c.value + 1)
            .returning(counters.c.value)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def next(self, key: str) -> str:
        """
        Allocate the next value of ``key``.

        Args:
            key: Counter name, e.g. "appointment"

        Returns:
            The value zero-padded to the allocator width
        """
        value = await self._increment(key)
        if value is None:
            try:
                await self.db.execute(insert(counters).values(key=key, value=1))
                value = 1
            except IntegrityError:
                # Another request created the counter first
                await self.db.rollback()
                value = await self._increment(key)
        await self.db.commit()

        logger.debug("sequence_allocated", key=key, value=value)
        return str(value).zfill(self.width)

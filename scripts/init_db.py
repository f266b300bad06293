"""Script to create the scheduling tables without running migrations."""

import asyncio

import structlog

from clinic_scheduler.database import engine
from clinic_scheduler.middleware.logging import configure_logging
from clinic_scheduler.models import metadata

logger = structlog.get_logger()


async def init_db() -> None:
    """Create every table known to the metadata that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    logger.info("database_initialized", tables=sorted(metadata.tables))
    await engine.dispose()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db())

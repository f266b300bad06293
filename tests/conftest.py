import os
from collections.abc import AsyncGenerator
from datetime import date, datetime
from pathlib import Path
from typing import Any

# Settings are read at import time; point them at a throwaway database first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SMS_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from clinic_scheduler.core.clock import FixedClock, get_clock
from clinic_scheduler.database import get_db
from clinic_scheduler.main import app
from clinic_scheduler.models import blocked_time_ranges, metadata
from clinic_scheduler.schemas.sms import SmsResult
from clinic_scheduler.services.sms_service import get_sms_notifier

# Monday 2 March 2026, 10:00 clinic time
NOW = datetime(2026, 3, 2, 10, 0)
TODAY = NOW.date()


class FakeSmsNotifier:
    """Records every send and reports success without touching the network."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def send(self, destination: str, template_id: str, fields: dict[str, str]) -> SmsResult:
        self.calls.append(
            {"destination": destination, "template_id": template_id, "fields": fields}
        )
        return SmsResult(success=True, reason="sent", message_id="SM-test", template=template_id)


@pytest_asyncio.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def sms_notifier() -> FakeSmsNotifier:
    return FakeSmsNotifier()


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FixedClock,
    sms_notifier: FakeSmsNotifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client; every request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_sms_notifier] = lambda: sms_notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def appointment_data() -> dict:
    """Sample appointment request body, two days out at 09:00."""
    return {
        "first_name": "Maria",
        "last_name": "Santos",
        "middle_name": "Reyes",
        "birthdate": "2019-06-15",
        "sex": "Female",
        "height": 110.5,
        "weight": 19.2,
        "mother_info": {"name": "Ana Santos", "age": 34, "occupation": "Accountant"},
        "father_info": {"name": "", "age": None, "occupation": None},
        "preferred_date": "2026-03-04",
        "preferred_time": "09:00",
        "reason_for_visit": "Fever and cough for three days",
        "contact_number": "09171234567",
        "address": "12 Mabini St, Quezon City",
        "source": "patient_app",
    }


@pytest.fixture
def block_dates(session_factory: async_sessionmaker[AsyncSession]):
    """Insert an active blocked range directly."""

    async def _block(
        start: date,
        end: date | None = None,
        reason: str | None = "Holiday",
        custom_reason: str | None = None,
    ) -> None:
        async with session_factory() as session:
            await session.execute(
                insert(blocked_time_ranges).values(
                    start_date=start,
                    end_date=end or start,
                    reason=reason,
                    custom_reason=custom_reason,
                    is_active=True,
                )
            )
            await session.commit()

    return _block


@pytest.fixture
def today(clock: FixedClock) -> date:
    """Current clinic date according to the test clock."""
    return clock.now().date()

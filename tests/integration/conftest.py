"""Integration test fixtures: sync service, approval service and API client."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_payroll.api.app import create_app
from hr_payroll.models import Payroll
from hr_payroll.services.sync_service import PayrollSyncService

from tests.factories import RecordingNotifier

# Short enough to keep tests fast, long enough for a burst of requests
SYNC_DELAY_SECONDS = 0.3


@pytest_asyncio.fixture
async def sync_service(
    session_factory: async_sessionmaker[AsyncSession],
    notifier: RecordingNotifier,
) -> AsyncGenerator[PayrollSyncService, None]:
    """Sync service with a short debounce window and a recording notifier."""
    service = PayrollSyncService(
        session_factory,
        notifier=notifier,
        delay_seconds=SYNC_DELAY_SECONDS,
        weekend_days={6, 7},
    )
    yield service
    await service.shutdown()


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    sync_service: PayrollSyncService,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the API running against the test database."""
    app = create_app(session_factory=session_factory, sync_service=sync_service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def fetch_payroll(session_factory: async_sessionmaker[AsyncSession]):
    """Load the payroll row for (employee, year, month) in a fresh session."""

    async def _fetch(employee_id, year: int, month: int) -> Payroll | None:
        async with session_factory() as s:
            result = await s.execute(
                select(Payroll).where(
                    Payroll.employee_id == employee_id,
                    Payroll.year == year,
                    Payroll.month == month,
                )
            )
            return result.scalar_one_or_none()

    return _fetch

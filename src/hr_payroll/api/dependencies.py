"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.services.approval_service import ApprovalService
from hr_payroll.services.sync_service import PayrollSyncService


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_sync_service(request: Request) -> PayrollSyncService:
    """Get the application's payroll sync service."""
    return request.app.state.sync_service


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
SyncService = Annotated[PayrollSyncService, Depends(get_sync_service)]


def get_approval_service(db: DbSession, sync_service: SyncService) -> ApprovalService:
    return ApprovalService(db, sync_service)


Approvals = Annotated[ApprovalService, Depends(get_approval_service)]

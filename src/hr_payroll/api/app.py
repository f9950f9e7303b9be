"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_payroll.api.routes import approvals_router, health_router, payroll_router
from hr_payroll.config import get_settings
from hr_payroll.database import dispose_db, init_db
from hr_payroll.errors import (
    CalculationDependencyError,
    InvalidStateTransition,
    NotFoundError,
    PayrollError,
    ValidationError,
)
from hr_payroll.events.emitter import EventEmitter
from hr_payroll.events.notifier import EmitterNotifier, PayrollNotifier
from hr_payroll.services.sync_service import PayrollSyncService

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES: list[tuple[type[PayrollError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateTransition, status.HTTP_409_CONFLICT),
    (CalculationDependencyError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: PayrollError) -> int:
    for error_cls, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    owns_engine = False
    if getattr(app.state, "session_factory", None) is None:
        _, app.state.session_factory = init_db()
        owns_engine = True
    if getattr(app.state, "sync_service", None) is None:
        app.state.sync_service = PayrollSyncService(
            app.state.session_factory,
            notifier=EmitterNotifier(app.state.emitter),
        )
    yield
    await app.state.sync_service.shutdown()
    if owns_engine:
        await dispose_db()


def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    sync_service: PayrollSyncService | None = None,
    notifier: PayrollNotifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without arguments the database and sync service are created on startup
    from settings.
    """
    settings = get_settings()
    app = FastAPI(
        title="HR Payroll API",
        description="Payroll proration, approval workflow and payroll sync",
        version=settings.engine_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.emitter = EventEmitter()
    app.state.session_factory = session_factory
    if sync_service is None and session_factory is not None:
        sync_service = PayrollSyncService(
            session_factory,
            notifier=notifier or EmitterNotifier(app.state.emitter),
        )
    app.state.sync_service = sync_service

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map payroll errors to JSON error bodies."""
        return JSONResponse(
            status_code=status_code_for(exc),
            content={"detail": exc.message, "code": exc.code, "details": exc.details},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(approvals_router, prefix="/api/v1")

    return app

"""Payroll-updated notification sinks."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from hr_payroll.events.emitter import EventEmitter
from hr_payroll.events.types import PayrollUpdated

logger = logging.getLogger(__name__)


@runtime_checkable
class PayrollNotifier(Protocol):
    """Receives a PayrollUpdated event after every successful recompute."""

    async def payroll_updated(self, event: PayrollUpdated) -> None: ...


class EmitterNotifier:
    """Publishes payroll updates on an in-process EventEmitter.

    Handler failures are logged by the emitter and never reach the caller.
    """

    def __init__(self, emitter: EventEmitter | None = None):
        self.emitter = emitter or EventEmitter()

    async def payroll_updated(self, event: PayrollUpdated) -> None:
        errors = await self.emitter.emit(event)
        if errors:
            logger.warning(
                "%d handler(s) failed for %s on payroll %s",
                len(errors),
                PayrollUpdated.CHANNEL,
                event.payroll_id,
            )


class LoggingNotifier:
    """Writes payroll updates to the log."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    async def payroll_updated(self, event: PayrollUpdated) -> None:
        logger.log(
            self.level,
            "%s payroll=%s employee=%s period=%d-%02d status=%s sync=%s triggers=%d",
            PayrollUpdated.CHANNEL,
            event.payroll_id,
            event.employee_id,
            event.year,
            event.month,
            event.status,
            event.sync_status,
            len(event.triggers),
        )

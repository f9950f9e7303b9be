"""Debounced, keyed scheduling of payroll recomputes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import UUID

from hr_payroll.models.base import utcnow

logger = logging.getLogger(__name__)

# (employee_id, year, month)
SyncKey = tuple[UUID, int, int]


@dataclass(frozen=True)
class SyncTrigger:
    """Why a recompute was requested."""

    type: str  # record kind, e.g. 'bonus'
    record_id: str | None = None
    action: str | None = None  # transition name
    status: str | None = None  # record status after the transition
    at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "record_id": self.record_id,
            "action": self.action,
            "status": self.status,
            "at": self.at.isoformat(),
        }


@dataclass(frozen=True)
class SyncOptions:
    """How a recompute should treat the existing payroll row."""

    allow_create: bool = True
    force_regenerate: bool = False
    emit_event: bool = True


@dataclass
class PendingSync:
    """A scheduled recompute that has not fired yet."""

    key: SyncKey
    handle: asyncio.TimerHandle
    triggers: list[SyncTrigger]
    options: SyncOptions


SyncCallback = Callable[[SyncKey, list[SyncTrigger], SyncOptions], Awaitable[Any]]


class DebounceScheduler:
    """Coalesces bursts of requests per key into a single callback run.

    Lifecycle per key:
    - schedule: arm a timer for ``delay_seconds``
    - schedule again before it fires: cancel and re-arm, triggers accumulate,
      options are replaced by the latest request
    - fire: the entry is removed and the callback runs as a tracked task

    Timers live only in this process; pending work is lost on restart.
    """

    def __init__(self, callback: SyncCallback, delay_seconds: float = 1.5):
        self.callback = callback
        self.delay_seconds = delay_seconds
        self._pending: dict[SyncKey, PendingSync] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def schedule(
        self,
        key: SyncKey,
        trigger: SyncTrigger | None = None,
        options: SyncOptions | None = None,
    ) -> None:
        """Arm or re-arm the timer for ``key``. Returns immediately."""
        loop = asyncio.get_running_loop()
        triggers: list[SyncTrigger] = []

        existing = self._pending.pop(key, None)
        if existing is not None:
            existing.handle.cancel()
            triggers = existing.triggers
        if trigger is not None:
            triggers.append(trigger)

        handle = loop.call_later(self.delay_seconds, self._fire, key)
        self._pending[key] = PendingSync(
            key=key,
            handle=handle,
            triggers=triggers,
            options=options or SyncOptions(),
        )
        logger.debug(
            "Scheduled payroll sync %s in %.2fs (%d trigger(s))",
            _format_key(key),
            self.delay_seconds,
            len(triggers),
        )

    def is_pending(self, key: SyncKey) -> bool:
        return key in self._pending

    def pending_triggers(self, key: SyncKey) -> list[SyncTrigger]:
        entry = self._pending.get(key)
        return list(entry.triggers) if entry else []

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def running_count(self) -> int:
        return len(self._tasks)

    def _fire(self, key: SyncKey) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        logger.info(
            "Running payroll sync %s (%d trigger(s))", _format_key(key), len(entry.triggers)
        )
        task = asyncio.get_running_loop().create_task(self._run(entry))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, entry: PendingSync) -> None:
        try:
            await self.callback(entry.key, list(entry.triggers), entry.options)
        except Exception:
            logger.exception("Payroll sync %s failed", _format_key(entry.key))

    async def wait_idle(self, poll_interval: float = 0.01) -> None:
        """Wait until no timers are armed and no runs are in flight."""
        while self._pending or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(poll_interval)

    async def shutdown(self) -> None:
        """Cancel armed timers and wait for in-flight runs."""
        dropped = list(self._pending)
        for entry in self._pending.values():
            entry.handle.cancel()
        self._pending.clear()
        if dropped:
            logger.warning(
                "Dropped %d pending payroll sync(s) on shutdown: %s",
                len(dropped),
                ", ".join(_format_key(k) for k in dropped),
            )
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _format_key(key: SyncKey) -> str:
    employee_id, year, month = key
    return f"{employee_id}:{year}:{month}"

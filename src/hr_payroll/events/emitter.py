"""In-process event emitter.

The emitter provides:
- Handler registration by event type or for all events
- Sync and async handlers on the same emitter
- Error isolation (handler failures don't break other handlers)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar, Union

from hr_payroll.events.types import DomainEvent

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)

EventHandler = Callable[[DomainEvent], Union[None, Awaitable[None]]]


@dataclass
class HandlerRegistration:
    """Registration of an event handler."""

    handler: EventHandler
    event_types: set[str] | None  # None = all events
    is_async: bool


class EventEmitter:
    """Asynchronous event emitter.

    Usage:
        emitter = EventEmitter()

        async def push_to_clients(event: PayrollUpdated) -> None:
            await websocket_hub.broadcast(event.CHANNEL, event.to_dict())

        emitter.on(PayrollUpdated, push_to_clients)
        await emitter.emit(event)
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []

    def on(self, event_type: type[T] | list[type[T]], handler: EventHandler) -> None:
        """Register handler for specific event type(s)."""
        if isinstance(event_type, list):
            types = {t.__name__ for t in event_type}
        else:
            types = {event_type.__name__}
        self._handlers.append(
            HandlerRegistration(
                handler=handler,
                event_types=types,
                is_async=inspect.iscoroutinefunction(handler),
            )
        )

    def on_all(self, handler: EventHandler) -> None:
        """Register handler for all events."""
        self._handlers.append(
            HandlerRegistration(
                handler=handler,
                event_types=None,
                is_async=inspect.iscoroutinefunction(handler),
            )
        )

    def off(self, handler: EventHandler) -> None:
        """Unregister a handler."""
        self._handlers = [reg for reg in self._handlers if reg.handler is not handler]

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    async def emit(self, event: DomainEvent) -> list[Exception]:
        """Emit an event to all matching handlers.

        Returns list of any exceptions raised by handlers.
        """
        errors: list[Exception] = []
        event_type = event.event_type
        tasks: list[asyncio.Task[None]] = []

        for reg in self._handlers:
            if reg.event_types and event_type not in reg.event_types:
                continue

            if reg.is_async:
                tasks.append(asyncio.create_task(self._call_async_handler(reg.handler, event)))
            else:
                try:
                    reg.handler(event)
                except Exception as e:
                    logger.exception("Handler %s failed for event %s", reg.handler, event_type)
                    errors.append(e)

        if tasks:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    errors.append(result)

        return errors

    async def _call_async_handler(self, handler: EventHandler, event: DomainEvent) -> None:
        """Call async handler with error logging."""
        try:
            await handler(event)  # type: ignore[misc]
        except Exception:
            logger.exception(
                "Async handler %s failed for event %s",
                handler,
                event.event_type,
            )
            raise


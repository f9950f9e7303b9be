"""Domain events published by the payroll subsystem.

Events are immutable and carry metadata for tracing. They serialize to
plain JSON-compatible dictionaries for transports outside the process.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from hr_payroll.models.base import utcnow


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    PAYROLL = "payroll"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    correlation_id: UUID
    actor_id: str | None
    actor_type: str  # 'user', 'system', 'scheduler'
    source_service: str
    version: int = 1

    @classmethod
    def create(
        cls,
        correlation_id: UUID | None = None,
        actor_id: str | None = None,
        actor_type: str = "system",
        source_service: str = "payroll_sync",
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=utcnow(),
            correlation_id=correlation_id or uuid4(),
            actor_id=actor_id,
            actor_type=actor_type,
            source_service=source_service,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        """Event type name for routing."""
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        return _serialize_dict(asdict(self))

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def _serialize_dict(obj: Any) -> Any:
    """Recursively serialize objects for JSON compatibility."""
    if isinstance(obj, dict):
        return {k: _serialize_dict(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_serialize_dict(v) for v in obj]
    elif isinstance(obj, UUID):
        return str(obj)
    elif isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, date):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    return obj


@dataclass(frozen=True)
class PayrollUpdated(DomainEvent):
    """A payroll row was created or recomputed."""

    # Channel name used by realtime transports
    CHANNEL = "finance:payroll:update"

    payroll_id: UUID
    employee_id: UUID
    year: int
    month: int
    status: str
    sync_status: str  # 'created' or 'updated'
    payroll: dict[str, Any]
    calculation: dict[str, Any] | None = None
    proration: dict[str, Any] | None = None
    triggers: list[dict[str, Any]] = field(default_factory=list)

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL

    def summary(self) -> dict[str, Any]:
        return {"status": self.status, "month": self.month, "year": self.year}

"""Base model class and shared column mixins for SQLAlchemy ORM."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
    }

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


class TimestampMixin:
    """Mixin for models with created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class UpdatedAtMixin:
    """Mixin for models that track their last modification."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class StageApprovalMixin:
    """Finance and management approval stamps shared by every financial record."""

    finance_approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    finance_approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    management_approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    management_approved_by: Mapped[str | None] = mapped_column(String, nullable=True)


class HoldMixin:
    """Current on-hold state."""

    on_hold_at: Mapped[datetime | None] = mapped_column(nullable=True)
    on_hold_by: Mapped[str | None] = mapped_column(String, nullable=True)
    on_hold_reason: Mapped[str | None] = mapped_column(Text, nullable=True)


class RejectionMixin:
    """Rejection audit fields."""

    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

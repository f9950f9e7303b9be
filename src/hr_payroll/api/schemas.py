"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Approval schemas
# ============================================================================


class TransitionRequest(BaseModel):
    """Schema for a workflow transition request."""

    actor_id: str
    reason: str | None = None
    reference: str | None = None


class TransitionResponse(BaseModel):
    """Schema for the result of a workflow transition."""

    kind: str
    record_id: UUID
    transition: str
    previous_status: str
    status: str
    record: dict[str, Any]
    sync_scheduled: bool = False


class AvailableTransitionsResponse(BaseModel):
    """Transitions allowed from a record's current status."""

    kind: str
    record_id: UUID
    status: str
    locked: bool
    transitions: list[str]


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollResponse(BaseModel):
    """Schema for payroll response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_id: UUID
    employee_id: UUID
    month: int
    year: int
    base_salary: Decimal
    total_salary: Decimal
    allowances: Decimal
    deductions: Decimal
    tax_deduction: Decimal
    net_salary: Decimal
    status: str
    finance_approved_at: datetime | None = None
    finance_approved_by: str | None = None
    management_approved_at: datetime | None = None
    management_approved_by: str | None = None
    uploaded_to_bank_at: datetime | None = None
    uploaded_to_bank_by: str | None = None
    bank_upload_reference: str | None = None
    bank_payment_approved_at: datetime | None = None
    bank_payment_approved_by: str | None = None
    bank_payment_reference: str | None = None
    rejected_at: datetime | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
    rejected_at_stage: str | None = None
    on_hold_at: datetime | None = None
    on_hold_by: str | None = None
    on_hold_reason: str | None = None
    on_hold_history: list[dict[str, Any]] | None = None
    created_at: datetime
    updated_at: datetime


class GenerateRequest(BaseModel):
    """Schema for generating payroll for a month."""

    year: int = Field(ge=1900, le=9999)
    month: int = Field(ge=1, le=12)
    employee_ids: list[UUID] | None = None
    force_regenerate: bool = False


class RegenerateRequest(BaseModel):
    """Schema for regenerating one employee's payroll."""

    employee_id: UUID
    year: int = Field(ge=1900, le=9999)
    month: int = Field(ge=1, le=12)
    actor_id: str | None = None


class SkippedItem(BaseModel):
    """One employee left untouched by a sync or generation."""

    employee_id: UUID
    reason: str | None = None
    message: str | None = None


class SyncResultResponse(BaseModel):
    """Schema for a single recompute result."""

    status: str
    employee_id: UUID
    year: int
    month: int
    reason: str | None = None
    message: str | None = None
    payroll: PayrollResponse | None = None


class GenerationResponse(BaseModel):
    """Schema for a month's generation summary."""

    year: int
    month: int
    created: list[UUID]
    updated: list[UUID]
    skipped: list[SkippedItem]
    total: int


class PreviewResponse(BaseModel):
    """Schema for a read-only salary calculation."""

    employee_id: UUID
    year: int
    month: int
    calculation: dict[str, Any]
    proration: dict[str, Any]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    details: dict[str, Any] | None = None

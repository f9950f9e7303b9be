"""Payroll generation, lookup and preview endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from hr_payroll.api.dependencies import DbSession, SyncService
from hr_payroll.api.schemas import (
    ErrorResponse,
    GenerateRequest,
    GenerationResponse,
    PayrollResponse,
    PreviewResponse,
    RegenerateRequest,
    SkippedItem,
    SyncResultResponse,
)
from hr_payroll.services.repository import PayrollRepository

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post(
    "/generate",
    response_model=GenerationResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}},
)
async def generate_payroll(
    sync_service: SyncService,
    payload: GenerateRequest,
) -> GenerationResponse:
    """Create or refresh payroll for every employee active in the month."""
    summary = await sync_service.generate_for_month(
        payload.year,
        payload.month,
        employee_ids=payload.employee_ids,
        force_regenerate=payload.force_regenerate,
    )
    return GenerationResponse(
        year=summary.year,
        month=summary.month,
        created=[r.employee_id for r in summary.created],
        updated=[r.employee_id for r in summary.updated],
        skipped=[
            SkippedItem(
                employee_id=r.employee_id,
                reason=r.reason.value if r.reason else None,
                message=r.message,
            )
            for r in summary.skipped
        ],
        total=summary.total,
    )


@router.post(
    "/regenerate",
    response_model=SyncResultResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def regenerate_payroll(
    sync_service: SyncService,
    payload: RegenerateRequest,
) -> SyncResultResponse:
    """Delete and recreate one employee's payroll for a month.

    Payroll already uploaded to the bank cannot be regenerated (409).
    """
    result = await sync_service.regenerate(
        payload.employee_id, payload.year, payload.month, actor_id=payload.actor_id
    )
    return SyncResultResponse(
        status=result.status.value,
        employee_id=result.employee_id,
        year=result.year,
        month=result.month,
        reason=result.reason.value if result.reason else None,
        message=result.message,
        payroll=PayrollResponse.model_validate(result.payroll) if result.payroll else None,
    )


@router.get(
    "/preview/{employee_id}",
    response_model=PreviewResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def preview_payroll(
    sync_service: SyncService,
    employee_id: UUID,
    year: Annotated[int, Query(ge=1900, le=9999)],
    month: Annotated[int, Query(ge=1, le=12)],
) -> PreviewResponse:
    """Calculate an employee's salary for a month without saving anything."""
    calculation, proration = await sync_service.calculate(employee_id, year, month)
    return PreviewResponse(
        employee_id=employee_id,
        year=year,
        month=month,
        calculation=calculation.to_dict(),
        proration=proration.to_dict(),
    )


@router.get(
    "/{payroll_id}",
    response_model=PayrollResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll(db: DbSession, payroll_id: UUID) -> PayrollResponse:
    """Get a payroll record by ID."""
    payroll = await PayrollRepository(db).get_payroll(payroll_id)
    if payroll is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payroll not found",
        )
    return PayrollResponse.model_validate(payroll)

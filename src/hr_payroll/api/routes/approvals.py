"""Approval workflow endpoints for payroll and adjustment records."""

from uuid import UUID

from fastapi import APIRouter, status

from hr_payroll.api.dependencies import Approvals
from hr_payroll.api.schemas import (
    AvailableTransitionsResponse,
    ErrorResponse,
    TransitionRequest,
    TransitionResponse,
)
from hr_payroll.services.state_machine import ApprovalStateMachine

router = APIRouter(tags=["approvals"])


@router.post(
    "/{kind}/{record_id}/{transition}",
    response_model=TransitionResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def apply_transition(
    approvals: Approvals,
    kind: str,
    record_id: UUID,
    transition: str,
    payload: TransitionRequest,
) -> TransitionResponse:
    """Move a record to its next workflow status.

    Errors are returned as VALIDATION_ERROR (400), NOT_FOUND (404),
    INVALID_STATE_TRANSITION or RECORD_LOCKED (409).
    """
    result = await approvals.transition(
        kind,
        record_id,
        transition,
        payload.actor_id,
        reason=payload.reason,
        reference=payload.reference,
    )
    return TransitionResponse(
        kind=result.kind.value,
        record_id=result.record_id,
        transition=result.transition,
        previous_status=result.previous_status,
        status=result.status,
        record=result.record.to_dict(),
        sync_scheduled=result.sync_key is not None,
    )


@router.get(
    "/{kind}/{record_id}/transitions",
    response_model=AvailableTransitionsResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def list_transitions(
    approvals: Approvals,
    kind: str,
    record_id: UUID,
) -> AvailableTransitionsResponse:
    """List the transitions allowed from the record's current status."""
    record = await approvals.get_record(kind, record_id)
    machine = ApprovalStateMachine.for_kind(kind)
    return AvailableTransitionsResponse(
        kind=machine.kind.value,
        record_id=record_id,
        status=record.status,
        locked=machine.is_locked(record.status),
        transitions=machine.get_next_transitions(record.status),
    )

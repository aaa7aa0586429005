"""
Leave endpoints: submission, staged approval, cancellation, balances.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from workforce.api.v1.deps import get_caller, get_leave_workflow
from workforce.domain.leave import ApprovalStatus, LeaveDraft, Stage
from workforce.domain.roles import Caller
from workforce.schemas.leave import (CancelRequest, LeaveBalanceRead,
                                     LeaveRequestCreate, LeaveRequestRead,
                                     StageReviewRequest)
from workforce.services.leave import LeaveWorkflow

router = APIRouter(prefix="/leaves", tags=["leaves"])


@router.post("/request", response_model=LeaveRequestRead, status_code=201)
async def request_leave(
    body: LeaveRequestCreate,
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> LeaveRequestRead:
    draft = LeaveDraft(user_id=caller.user_id, **body.model_dump())
    result = await workflow.submit(caller, draft)
    return LeaveRequestRead.from_request(result.unwrap(), workflow.clock().date())


@router.get("/my-requests", response_model=list[LeaveRequestRead])
async def my_requests(
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> list[LeaveRequestRead]:
    result = await workflow.list_for_user(caller, caller.user_id)
    today = workflow.clock().date()
    return [LeaveRequestRead.from_request(r, today) for r in result.unwrap()]


@router.get("/my-balance", response_model=LeaveBalanceRead)
async def my_balance(
    year: int | None = None,
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> LeaveBalanceRead:
    result = await workflow.balance(caller, caller.user_id, year)
    return LeaveBalanceRead.from_balance(result.unwrap())


@router.get("/user/{user_id}/requests", response_model=list[LeaveRequestRead])
async def user_requests(
    user_id: int,
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> list[LeaveRequestRead]:
    result = await workflow.list_for_user(caller, user_id)
    today = workflow.clock().date()
    return [LeaveRequestRead.from_request(r, today) for r in result.unwrap()]


@router.get("/user/{user_id}/balance", response_model=LeaveBalanceRead)
async def user_balance(
    user_id: int,
    year: int | None = None,
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> LeaveBalanceRead:
    result = await workflow.balance(caller, user_id, year)
    return LeaveBalanceRead.from_balance(result.unwrap())


@router.get("/pending/{stage}", response_model=list[LeaveRequestRead])
async def pending_for_stage(
    stage: Stage,
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> list[LeaveRequestRead]:
    """Requests waiting on *stage*; team leaders only see their direct reports."""
    result = await workflow.pending_for_stage(caller, stage)
    today = workflow.clock().date()
    return [LeaveRequestRead.from_request(r, today) for r in result.unwrap()]


@router.put("/{request_id}/approve/{stage}", response_model=LeaveRequestRead)
async def review_stage(
    request_id: int,
    stage: Stage,
    body: StageReviewRequest,
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> LeaveRequestRead:
    result = await workflow.review(
        caller,
        request_id,
        stage,
        ApprovalStatus(body.decision),
        comments=body.comments,
        escalate_to_director=body.escalate_to_director,
    )
    return LeaveRequestRead.from_request(result.unwrap(), workflow.clock().date())


@router.put("/{request_id}/cancel", response_model=LeaveRequestRead)
async def cancel_request(
    request_id: int,
    body: CancelRequest,
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> LeaveRequestRead:
    result = await workflow.cancel(caller, request_id, body.reason)
    return LeaveRequestRead.from_request(result.unwrap(), workflow.clock().date())


@router.get("/{request_id}", response_model=LeaveRequestRead)
async def get_request(
    request_id: int,
    caller: Caller = Depends(get_caller),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
) -> LeaveRequestRead:
    result = await workflow.get(caller, request_id)
    return LeaveRequestRead.from_request(result.unwrap(), workflow.clock().date())

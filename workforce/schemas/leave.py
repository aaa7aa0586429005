"""Pydantic schemas for leave requests, stage reviews and balances."""

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from workforce.domain.leave import (LeaveBalance, LeaveRequest, LeaveStatus,
                                    LeaveType, StageApproval)


class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    start_date: dt.date
    end_date: dt.date
    reason: str | None = Field(default=None, max_length=2000)
    emergency_contact: str | None = Field(default=None, max_length=255)
    replacement_person: str | None = Field(default=None, max_length=255)
    handover_notes: str | None = Field(default=None, max_length=5000)
    is_urgent: bool = False


class StageReviewRequest(BaseModel):
    decision: Literal["APPROVED", "REJECTED"]
    comments: str | None = Field(default=None, max_length=2000)
    escalate_to_director: bool = False

    @model_validator(mode="after")
    def _escalation_needs_approval(self) -> "StageReviewRequest":
        if self.escalate_to_director and self.decision == "REJECTED":
            raise ValueError("Only an approval can be escalated to the director")
        return self


class CancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


# ── Responses ───────────────────────────────────────────────────────
class StageApprovalRead(BaseModel):
    status: str | None
    approver_id: int | None
    date: dt.datetime | None
    comments: str | None

    @classmethod
    def from_stage(cls, approval: StageApproval) -> "StageApprovalRead":
        return cls(
            status=approval.status.value if approval.status else None,
            approver_id=approval.approver_id,
            date=approval.date,
            comments=approval.comments,
        )


class LeaveRequestRead(BaseModel):
    id: int
    user_id: int
    employee_code: str | None
    leave_type: LeaveType
    start_date: dt.date
    end_date: dt.date
    return_date: dt.date
    total_days: float
    reason: str | None
    emergency_contact: str | None
    replacement_person: str | None
    handover_notes: str | None
    status: LeaveStatus
    manager: StageApprovalRead
    hr: StageApprovalRead
    director: StageApprovalRead
    requires_manager_approval: bool
    requires_hr_approval: bool
    requires_director_approval: bool
    is_urgent: bool
    submitted_date: dt.datetime | None
    final_approval_date: dt.datetime | None
    rejection_reason: str | None
    cancelled_date: dt.datetime | None
    cancel_reason: str | None
    next_approver: str | None
    days_until_start: int
    can_be_cancelled: bool
    is_active: bool
    is_pending: bool

    @classmethod
    def from_request(cls, request: LeaveRequest, today: dt.date) -> "LeaveRequestRead":
        next_stage = request.next_approver
        return cls(
            id=request.id,
            user_id=request.user_id,
            employee_code=request.employee_code,
            leave_type=request.leave_type,
            start_date=request.start_date,
            end_date=request.end_date,
            return_date=request.return_date,
            total_days=request.total_days,
            reason=request.reason,
            emergency_contact=request.emergency_contact,
            replacement_person=request.replacement_person,
            handover_notes=request.handover_notes,
            status=request.status,
            manager=StageApprovalRead.from_stage(request.manager),
            hr=StageApprovalRead.from_stage(request.hr),
            director=StageApprovalRead.from_stage(request.director),
            requires_manager_approval=request.requires_manager_approval,
            requires_hr_approval=request.requires_hr_approval,
            requires_director_approval=request.requires_director_approval,
            is_urgent=request.is_urgent,
            submitted_date=request.submitted_date,
            final_approval_date=request.final_approval_date,
            rejection_reason=request.rejection_reason,
            cancelled_date=request.cancelled_date,
            cancel_reason=request.cancel_reason,
            next_approver=next_stage.value if next_stage else None,
            days_until_start=request.days_until_start(today),
            can_be_cancelled=request.can_be_cancelled(today),
            is_active=request.is_active(today),
            is_pending=request.is_pending,
        )


class BalanceLineRead(BaseModel):
    leave_type: LeaveType
    entitlement: float
    taken: float
    remaining: float


class LeaveBalanceRead(BaseModel):
    user_id: int
    year: int
    total_taken: float
    lines: list[BalanceLineRead]

    @classmethod
    def from_balance(cls, balance: LeaveBalance) -> "LeaveBalanceRead":
        return cls(
            user_id=balance.user_id,
            year=balance.year,
            total_taken=balance.total_taken,
            lines=[
                BalanceLineRead(
                    leave_type=line.leave_type,
                    entitlement=line.entitlement,
                    taken=line.taken,
                    remaining=line.remaining,
                )
                for line in balance.lines
            ],
        )

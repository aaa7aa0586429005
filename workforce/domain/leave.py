"""
Leave request approval workflow.

A request passes through up to three sequential review stages (manager,
HR, director).  Which stages apply is fixed at submission time from the
leave type, the number of working days, the urgency flag and whether the
employee has a manager; a reviewer may later escalate a request to the
director.  The overall status is always re-derived from the three stage
sub-statuses by :func:`recompute_status`.

All functions are pure: they take a :class:`LeaveRequest` value and return
a new one, raising a :class:`DomainError` when the transition is refused.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Optional

from workforce.domain.calendar import (count_working_days, ranges_overlap,
                                       return_date_for)
from workforce.domain.errors import (AlreadyReviewed, CannotCancel,
                                     InsufficientBalance, InvalidDateRange,
                                     NotAuthorized, OverlappingRequest,
                                     PrerequisiteNotMet, TooSoon)
from workforce.domain.roles import Caller, Capability


class LeaveType(str, Enum):
    ANNUAL_LEAVE = "ANNUAL_LEAVE"
    RTT = "RTT"
    SICK_LEAVE = "SICK_LEAVE"
    MATERNITY_LEAVE = "MATERNITY_LEAVE"
    PATERNITY_LEAVE = "PATERNITY_LEAVE"
    FAMILY_EVENT = "FAMILY_EVENT"
    UNPAID_LEAVE = "UNPAID_LEAVE"
    STUDY_LEAVE = "STUDY_LEAVE"
    COMPASSIONATE_LEAVE = "COMPASSIONATE_LEAVE"
    OTHER = "OTHER"

    @property
    def max_days_per_year(self) -> int:
        return LEAVE_TYPE_RULES[self][0]

    @property
    def requires_manager_approval(self) -> bool:
        return LEAVE_TYPE_RULES[self][1]


# leave type -> (annual cap in days, manager approval required)
LEAVE_TYPE_RULES: dict[LeaveType, tuple[int, bool]] = {
    LeaveType.ANNUAL_LEAVE: (25, True),
    LeaveType.RTT: (12, True),
    LeaveType.SICK_LEAVE: (365, False),
    LeaveType.MATERNITY_LEAVE: (112, False),
    LeaveType.PATERNITY_LEAVE: (25, False),
    LeaveType.FAMILY_EVENT: (5, False),
    LeaveType.UNPAID_LEAVE: (90, False),
    LeaveType.STUDY_LEAVE: (30, False),
    LeaveType.COMPASSIONATE_LEAVE: (3, False),
    LeaveType.OTHER: (0, True),
}

BALANCE_CHECKED_TYPES = frozenset({LeaveType.ANNUAL_LEAVE, LeaveType.RTT})
DIRECTOR_REVIEWED_TYPES = frozenset({LeaveType.UNPAID_LEAVE, LeaveType.STUDY_LEAVE})
DIRECTOR_REVIEW_MIN_DAYS = Decimal(15)
SHORT_SICK_LEAVE_MAX_DAYS = Decimal(3)


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    MANAGER_APPROVED = "MANAGER_APPROVED"
    HR_APPROVED = "HR_APPROVED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Stage(str, Enum):
    MANAGER = "manager"
    HR = "hr"
    DIRECTOR = "director"


IN_REVIEW_STATUSES = frozenset(
    {LeaveStatus.PENDING, LeaveStatus.MANAGER_APPROVED, LeaveStatus.HR_APPROVED}
)
TERMINAL_STATUSES = frozenset(
    {LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED}
)
# Requests that still block their date range for new submissions
OVERLAP_BLOCKING_STATUSES = IN_REVIEW_STATUSES | {LeaveStatus.APPROVED}


@dataclass(frozen=True)
class StageApproval:
    status: Optional[ApprovalStatus] = None
    approver_id: Optional[int] = None
    date: Optional[datetime] = None
    comments: Optional[str] = None


_OPEN = StageApproval(status=ApprovalStatus.PENDING)


@dataclass(frozen=True)
class LeaveRequest:
    user_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    return_date: date
    total_days: Decimal
    id: Optional[int] = None
    employee_code: Optional[str] = None
    reason: Optional[str] = None
    emergency_contact: Optional[str] = None
    replacement_person: Optional[str] = None
    handover_notes: Optional[str] = None
    status: LeaveStatus = LeaveStatus.PENDING
    manager: StageApproval = field(default_factory=StageApproval)
    hr: StageApproval = field(default_factory=StageApproval)
    director: StageApproval = field(default_factory=StageApproval)
    requires_manager_approval: bool = True
    requires_hr_approval: bool = True
    requires_director_approval: bool = False
    is_urgent: bool = False
    submitted_date: Optional[datetime] = None
    final_approval_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    cancelled_date: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    version: Optional[int] = None

    def stage(self, stage: Stage) -> StageApproval:
        return getattr(self, stage.value)

    def with_stage(self, stage: Stage, approval: StageApproval) -> "LeaveRequest":
        return replace(self, **{stage.value: approval})

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_pending(self) -> bool:
        return self.status in IN_REVIEW_STATUSES

    def is_active(self, today: date) -> bool:
        return self.status == LeaveStatus.APPROVED and self.start_date <= today <= self.end_date

    def can_be_cancelled(self, today: date) -> bool:
        return (
            self.status not in (LeaveStatus.CANCELLED, LeaveStatus.REJECTED)
            and self.start_date > today
        )

    def days_until_start(self, today: date) -> int:
        return max(0, (self.start_date - today).days)

    @property
    def next_approver(self) -> Optional[Stage]:
        if self.is_terminal:
            return None
        for stage in Stage:
            if self.stage(stage).status == ApprovalStatus.PENDING:
                return stage
        return None


# ── Balance ─────────────────────────────────────────────────────────
@dataclass(frozen=True)
class BalanceLine:
    leave_type: LeaveType
    entitlement: Decimal
    taken: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.entitlement - self.taken


@dataclass(frozen=True)
class LeaveBalance:
    user_id: int
    year: int
    lines: tuple[BalanceLine, ...]

    def line(self, leave_type: LeaveType) -> BalanceLine:
        for entry in self.lines:
            if entry.leave_type == leave_type:
                return entry
        raise KeyError(leave_type)

    def remaining(self, leave_type: LeaveType) -> Decimal:
        return self.line(leave_type).remaining

    @property
    def total_taken(self) -> Decimal:
        return sum((entry.taken for entry in self.lines), Decimal(0))


def entitlement_for_type(leave_type: LeaveType, annual_entitlement: int) -> Decimal:
    """Annual leave comes from the employee record, every other type from its cap."""
    if leave_type == LeaveType.ANNUAL_LEAVE:
        return Decimal(annual_entitlement)
    return Decimal(leave_type.max_days_per_year)


def build_balance(
    user_id: int,
    year: int,
    annual_entitlement: int,
    taken_by_type: Mapping[LeaveType, Decimal],
) -> LeaveBalance:
    lines = tuple(
        BalanceLine(
            leave_type=leave_type,
            entitlement=entitlement_for_type(leave_type, annual_entitlement),
            taken=Decimal(taken_by_type.get(leave_type, Decimal(0))),
        )
        for leave_type in LeaveType
    )
    return LeaveBalance(user_id=user_id, year=year, lines=lines)


# ── Submission ──────────────────────────────────────────────────────
@dataclass(frozen=True)
class LeaveDraft:
    user_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    emergency_contact: Optional[str] = None
    replacement_person: Optional[str] = None
    handover_notes: Optional[str] = None
    is_urgent: bool = False
    employee_code: Optional[str] = None


def requires_hr_approval(leave_type: LeaveType, total_days: Decimal) -> bool:
    return not (leave_type == LeaveType.SICK_LEAVE and total_days <= SHORT_SICK_LEAVE_MAX_DAYS)


def requires_director_approval(leave_type: LeaveType, total_days: Decimal, is_urgent: bool) -> bool:
    return (
        total_days > DIRECTOR_REVIEW_MIN_DAYS
        or leave_type in DIRECTOR_REVIEWED_TYPES
        or is_urgent
    )


def validate_draft(
    draft: LeaveDraft,
    *,
    today: date,
    existing: Iterable[LeaveRequest],
    balance: Optional[LeaveBalance],
    min_notice_days: int = 1,
) -> None:
    if draft.end_date < draft.start_date:
        raise InvalidDateRange()

    if draft.start_date < today + timedelta(days=min_notice_days):
        raise TooSoon(f"Leave must be requested at least {min_notice_days} day(s) in advance")

    for other in existing:
        if other.user_id != draft.user_id or other.status not in OVERLAP_BLOCKING_STATUSES:
            continue
        if ranges_overlap(draft.start_date, draft.end_date, other.start_date, other.end_date):
            raise OverlappingRequest(
                f"This period overlaps leave request {other.id} "
                f"({other.start_date.isoformat()} to {other.end_date.isoformat()})"
            )

    if draft.leave_type in BALANCE_CHECKED_TYPES and balance is not None:
        requested = Decimal(count_working_days(draft.start_date, draft.end_date))
        remaining = balance.remaining(draft.leave_type)
        if remaining < requested:
            raise InsufficientBalance(
                f"Insufficient {draft.leave_type.value} balance: "
                f"{remaining} day(s) remaining, {requested} requested"
            )


def submit(
    draft: LeaveDraft,
    *,
    now: datetime,
    has_manager: bool,
    existing: Iterable[LeaveRequest] = (),
    balance: Optional[LeaveBalance] = None,
    min_notice_days: int = 1,
) -> LeaveRequest:
    """Validate *draft* and build the new request with its first stage opened."""
    validate_draft(
        draft,
        today=now.date(),
        existing=existing,
        balance=balance,
        min_notice_days=min_notice_days,
    )

    total_days = Decimal(count_working_days(draft.start_date, draft.end_date))
    needs_manager = has_manager and draft.leave_type.requires_manager_approval
    needs_hr = requires_hr_approval(draft.leave_type, total_days)
    needs_director = requires_director_approval(draft.leave_type, total_days, draft.is_urgent)

    request = LeaveRequest(
        user_id=draft.user_id,
        employee_code=draft.employee_code,
        leave_type=draft.leave_type,
        start_date=draft.start_date,
        end_date=draft.end_date,
        return_date=return_date_for(draft.end_date),
        total_days=total_days,
        reason=draft.reason,
        emergency_contact=draft.emergency_contact,
        replacement_person=draft.replacement_person,
        handover_notes=draft.handover_notes,
        is_urgent=draft.is_urgent,
        requires_manager_approval=needs_manager,
        requires_hr_approval=needs_hr,
        requires_director_approval=needs_director,
        submitted_date=now,
    )

    if needs_manager:
        return replace(request, manager=_OPEN)
    if needs_hr:
        return replace(request, hr=_OPEN)
    if needs_director:
        return replace(request, director=_OPEN)
    return replace(request, status=LeaveStatus.APPROVED, final_approval_date=now)


# ── Review ──────────────────────────────────────────────────────────
@dataclass(frozen=True)
class StageReview:
    stage: Stage
    reviewer: Caller
    decision: ApprovalStatus
    at: datetime
    comments: Optional[str] = None
    escalate_to_director: bool = False


def recompute_status(request: LeaveRequest, at: datetime) -> LeaveRequest:
    """Derive the overall status from the stage sub-statuses (first rule that matches wins)."""
    manager, hr, director = request.manager.status, request.hr.status, request.director.status
    approved = ApprovalStatus.APPROVED

    if ApprovalStatus.REJECTED in (manager, hr, director):
        return replace(request, status=LeaveStatus.REJECTED)
    if request.requires_director_approval and director == approved:
        return _final_approval(request, at)
    if not request.requires_director_approval and hr == approved:
        return _final_approval(request, at)
    if manager == approved and not request.requires_hr_approval:
        return _final_approval(request, at)
    if manager == approved and request.requires_hr_approval:
        return replace(request, status=LeaveStatus.MANAGER_APPROVED)
    if hr == approved and request.requires_director_approval:
        return replace(request, status=LeaveStatus.HR_APPROVED)
    return request


def _final_approval(request: LeaveRequest, at: datetime) -> LeaveRequest:
    return replace(
        request,
        status=LeaveStatus.APPROVED,
        final_approval_date=request.final_approval_date or at,
    )


def authorize_stage(request: LeaveRequest, stage: Stage, reviewer: Caller, owner_manager_id: Optional[int]) -> None:
    if stage == Stage.MANAGER:
        allowed = reviewer.has_authority_over(request.user_id, owner_manager_id)
    elif stage == Stage.HR:
        allowed = reviewer.can(Capability.REVIEW_HR_STAGE)
    else:
        allowed = reviewer.can(Capability.REVIEW_DIRECTOR_STAGE)
    if not allowed:
        raise NotAuthorized(f"You are not authorized to review the {stage.value} stage of this request")


def _check_earlier_stages(request: LeaveRequest, stage: Stage) -> None:
    """Every required stage ahead of *stage* must already be APPROVED."""
    if stage in (Stage.HR, Stage.DIRECTOR):
        if request.requires_manager_approval and request.manager.status != ApprovalStatus.APPROVED:
            raise PrerequisiteNotMet()
    if stage == Stage.DIRECTOR:
        if request.requires_hr_approval and request.hr.status != ApprovalStatus.APPROVED:
            raise PrerequisiteNotMet("The request must first be approved by HR")


def review(
    request: LeaveRequest,
    event: StageReview,
    *,
    owner_manager_id: Optional[int] = None,
) -> LeaveRequest:
    """Record one reviewer's decision and advance the workflow."""
    if event.decision not in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
        raise ValueError("Decision must be APPROVED or REJECTED")

    stage = event.stage
    authorize_stage(request, stage, event.reviewer, owner_manager_id)

    if request.is_terminal:
        raise AlreadyReviewed(f"Leave request is already {request.status.value}")
    _check_earlier_stages(request, stage)
    if request.stage(stage).status != ApprovalStatus.PENDING:
        raise AlreadyReviewed(f"The {stage.value} stage is not awaiting review")

    updated = request.with_stage(
        stage,
        StageApproval(
            status=event.decision,
            approver_id=event.reviewer.user_id,
            date=event.at,
            comments=event.comments,
        ),
    )

    if event.decision == ApprovalStatus.REJECTED:
        updated = replace(
            updated,
            rejection_reason=event.comments or f"Rejected at the {stage.value} stage",
        )

    if event.escalate_to_director and stage != Stage.DIRECTOR:
        updated = replace(updated, requires_director_approval=True, director=_OPEN)

    if event.decision == ApprovalStatus.APPROVED:
        if stage == Stage.MANAGER and updated.requires_hr_approval and updated.hr.status is None:
            updated = replace(updated, hr=_OPEN)
        elif stage == Stage.HR and updated.requires_director_approval and updated.director.status is None:
            updated = replace(updated, director=_OPEN)

    return recompute_status(updated, event.at)


# ── Cancellation ────────────────────────────────────────────────────
def cancel(request: LeaveRequest, *, caller: Caller, reason: Optional[str], now: datetime) -> LeaveRequest:
    if request.user_id != caller.user_id and not caller.can_approve_leaves():
        raise NotAuthorized("You cannot cancel this leave request")
    if not request.can_be_cancelled(now.date()):
        raise CannotCancel()
    return replace(
        request,
        status=LeaveStatus.CANCELLED,
        cancelled_date=now,
        cancel_reason=reason,
    )

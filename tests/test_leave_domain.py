"""Tests for leave submission, staged review, cancellation and balances."""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from workforce.domain.calendar import (count_working_days, ranges_overlap,
                                       return_date_for)
from workforce.domain.errors import (AlreadyReviewed, CannotCancel,
                                     InsufficientBalance, InvalidDateRange,
                                     NotAuthorized, OverlappingRequest,
                                     PrerequisiteNotMet, TooSoon)
from workforce.domain.leave import (ApprovalStatus, LeaveDraft, LeaveRequest,
                                    LeaveStatus, LeaveType, Stage,
                                    StageApproval, StageReview, build_balance,
                                    cancel, recompute_status, review, submit)
from workforce.domain.roles import Caller, UserRole

NOW = datetime(2025, 3, 10, 10, 0)  # Monday
OWNER = Caller(1, UserRole.EMPLOYEE)
LEAD = Caller(2, UserRole.TEAM_LEADER)
HR = Caller(3, UserRole.HR)
DIRECTOR = Caller(4, UserRole.DIRECTOR)
OTHER_LEAD = Caller(5, UserRole.TEAM_LEADER)
STRANGER = Caller(9, UserRole.EMPLOYEE)

APPROVED = ApprovalStatus.APPROVED
REJECTED = ApprovalStatus.REJECTED


def draft(leave_type=LeaveType.ANNUAL_LEAVE, start=date(2025, 3, 17), end=date(2025, 3, 21), **kw):
    return LeaveDraft(user_id=OWNER.user_id, leave_type=leave_type, start_date=start, end_date=end, **kw)


def new_request(*args, has_manager=True, existing=(), balance=None, **kw):
    return submit(draft(*args, **kw), now=NOW, has_manager=has_manager, existing=existing, balance=balance)


def decide(request, stage, reviewer, decision=APPROVED, **kw):
    return review(
        request,
        StageReview(stage=stage, reviewer=reviewer, decision=decision, at=NOW, **kw),
        owner_manager_id=LEAD.user_id,
    )


# ── Calendar ────────────────────────────────────────────────────────
def test_full_week_counts_five_days_and_returns_next_monday():
    assert count_working_days(date(2025, 3, 10), date(2025, 3, 14)) == 5
    assert return_date_for(date(2025, 3, 14)) == date(2025, 3, 17)


def test_weekend_is_skipped():
    assert count_working_days(date(2025, 3, 14), date(2025, 3, 17)) == 2
    assert count_working_days(date(2025, 3, 15), date(2025, 3, 16)) == 0


def test_return_date_midweek():
    assert return_date_for(date(2025, 3, 11)) == date(2025, 3, 12)


@pytest.mark.parametrize(
    "other, expected",
    [
        ((date(2025, 3, 12), date(2025, 3, 13)), True),  # contained
        ((date(2025, 3, 5), date(2025, 3, 25)), True),  # containing
        ((date(2025, 3, 5), date(2025, 3, 10)), True),  # touches start
        ((date(2025, 3, 14), date(2025, 3, 20)), True),  # touches end
        ((date(2025, 3, 1), date(2025, 3, 9)), False),
        ((date(2025, 3, 15), date(2025, 3, 20)), False),
    ],
)
def test_ranges_overlap(other, expected):
    assert ranges_overlap(date(2025, 3, 10), date(2025, 3, 14), *other) is expected
    assert ranges_overlap(*other, date(2025, 3, 10), date(2025, 3, 14)) is expected


# ── Submission ──────────────────────────────────────────────────────
def test_annual_leave_opens_manager_stage():
    request = new_request(reason="holiday", employee_code="E-001")
    assert request.status == LeaveStatus.PENDING
    assert request.total_days == Decimal(5)
    assert request.return_date == date(2025, 3, 24)
    assert request.requires_manager_approval
    assert request.requires_hr_approval
    assert not request.requires_director_approval
    assert request.manager.status == ApprovalStatus.PENDING
    assert request.hr.status is None
    assert request.next_approver == Stage.MANAGER
    assert request.submitted_date == NOW
    assert request.employee_code == "E-001"


def test_employee_without_manager_starts_at_hr():
    request = new_request(has_manager=False)
    assert not request.requires_manager_approval
    assert request.manager.status is None
    assert request.hr.status == ApprovalStatus.PENDING


def test_short_sick_leave_is_auto_approved():
    request = new_request(LeaveType.SICK_LEAVE, date(2025, 3, 11), date(2025, 3, 12))
    assert request.status == LeaveStatus.APPROVED
    assert request.final_approval_date == NOW
    assert request.next_approver is None


def test_long_sick_leave_goes_to_hr():
    request = new_request(LeaveType.SICK_LEAVE)
    assert not request.requires_manager_approval
    assert request.hr.status == ApprovalStatus.PENDING


@pytest.mark.parametrize(
    "kwargs",
    [
        {"leave_type": LeaveType.UNPAID_LEAVE},
        {"leave_type": LeaveType.STUDY_LEAVE},
        {"is_urgent": True},
        {"start": date(2025, 4, 1), "end": date(2025, 4, 25)},
    ],
)
def test_director_required(kwargs):
    assert new_request(**kwargs).requires_director_approval


def test_fifteen_days_does_not_need_director():
    request = new_request(start=date(2025, 3, 17), end=date(2025, 4, 4))
    assert request.total_days == Decimal(15)
    assert not request.requires_director_approval


def test_end_before_start_rejected_first():
    with pytest.raises(InvalidDateRange):
        new_request(start=date(2025, 3, 10), end=date(2025, 3, 9))


def test_same_day_request_is_too_soon():
    with pytest.raises(TooSoon):
        new_request(start=date(2025, 3, 10), end=date(2025, 3, 11))


def test_next_day_request_is_accepted():
    assert new_request(start=date(2025, 3, 11), end=date(2025, 3, 11)).total_days == Decimal(1)


def _existing(status, start=date(2025, 3, 19), end=date(2025, 3, 25), user_id=OWNER.user_id):
    return LeaveRequest(
        id=42,
        user_id=user_id,
        leave_type=LeaveType.ANNUAL_LEAVE,
        start_date=start,
        end_date=end,
        return_date=return_date_for(end),
        total_days=Decimal(count_working_days(start, end)),
        status=status,
    )


@pytest.mark.parametrize(
    "status",
    [LeaveStatus.PENDING, LeaveStatus.MANAGER_APPROVED, LeaveStatus.HR_APPROVED, LeaveStatus.APPROVED],
)
def test_overlap_with_live_request_rejected(status):
    with pytest.raises(OverlappingRequest):
        new_request(existing=[_existing(status)])


@pytest.mark.parametrize("status", [LeaveStatus.REJECTED, LeaveStatus.CANCELLED])
def test_overlap_with_closed_request_allowed(status):
    assert new_request(existing=[_existing(status)]).status == LeaveStatus.PENDING


def test_overlap_with_other_users_request_allowed():
    other = _existing(LeaveStatus.APPROVED, user_id=99)
    assert new_request(existing=[other]).status == LeaveStatus.PENDING


def test_insufficient_annual_balance():
    balance = build_balance(OWNER.user_id, 2025, 25, {LeaveType.ANNUAL_LEAVE: Decimal(22)})
    with pytest.raises(InsufficientBalance):
        new_request(balance=balance)


def test_exact_remaining_balance_is_enough():
    balance = build_balance(OWNER.user_id, 2025, 25, {LeaveType.ANNUAL_LEAVE: Decimal(20)})
    assert new_request(balance=balance).total_days == Decimal(5)


def test_rtt_checked_against_its_cap():
    balance = build_balance(OWNER.user_id, 2025, 25, {LeaveType.RTT: Decimal(10)})
    with pytest.raises(InsufficientBalance):
        new_request(LeaveType.RTT, balance=balance)


def test_sick_leave_ignores_balance():
    balance = build_balance(OWNER.user_id, 2025, 0, {LeaveType.SICK_LEAVE: Decimal(365)})
    assert new_request(LeaveType.SICK_LEAVE, balance=balance).status == LeaveStatus.PENDING


# ── Review ──────────────────────────────────────────────────────────
def test_manager_then_hr_approval():
    request = decide(new_request(), Stage.MANAGER, LEAD, comments="enjoy")
    assert request.status == LeaveStatus.MANAGER_APPROVED
    assert request.manager == StageApproval(APPROVED, LEAD.user_id, NOW, "enjoy")
    assert request.hr.status == ApprovalStatus.PENDING
    assert request.next_approver == Stage.HR

    request = decide(request, Stage.HR, HR)
    assert request.status == LeaveStatus.APPROVED
    assert request.final_approval_date == NOW
    assert request.next_approver is None


def test_hr_may_review_the_manager_stage():
    assert decide(new_request(), Stage.MANAGER, HR).status == LeaveStatus.MANAGER_APPROVED


def test_unrelated_team_leader_cannot_review():
    with pytest.raises(NotAuthorized):
        decide(new_request(), Stage.MANAGER, OTHER_LEAD)


def test_employee_cannot_review_hr_stage():
    request = decide(new_request(), Stage.MANAGER, LEAD)
    with pytest.raises(NotAuthorized):
        decide(request, Stage.HR, STRANGER)


def test_team_leader_cannot_review_hr_stage():
    request = decide(new_request(), Stage.MANAGER, LEAD)
    with pytest.raises(NotAuthorized):
        decide(request, Stage.HR, LEAD)


def test_only_director_reviews_director_stage():
    request = decide(new_request(LeaveType.UNPAID_LEAVE), Stage.HR, HR)
    with pytest.raises(NotAuthorized):
        decide(request, Stage.DIRECTOR, HR)


def test_hr_before_manager_is_refused():
    with pytest.raises(PrerequisiteNotMet):
        decide(new_request(), Stage.HR, HR)


def test_stage_cannot_be_reviewed_twice():
    request = decide(new_request(), Stage.MANAGER, LEAD)
    with pytest.raises(AlreadyReviewed):
        decide(request, Stage.MANAGER, LEAD)


def test_unopened_stage_cannot_be_reviewed():
    with pytest.raises(AlreadyReviewed):
        decide(new_request(has_manager=False), Stage.MANAGER, HR)


def test_rejection_is_terminal():
    request = decide(new_request(), Stage.MANAGER, LEAD, REJECTED, comments="busy sprint")
    assert request.status == LeaveStatus.REJECTED
    assert request.rejection_reason == "busy sprint"
    with pytest.raises(AlreadyReviewed):
        decide(request, Stage.HR, HR)


def test_rejection_without_comment_names_the_stage():
    request = decide(new_request(), Stage.MANAGER, LEAD, REJECTED)
    assert request.rejection_reason == "Rejected at the manager stage"


def test_pending_is_not_a_decision():
    with pytest.raises(ValueError):
        decide(new_request(), Stage.MANAGER, LEAD, ApprovalStatus.PENDING)


def test_hr_then_director_path():
    request = new_request(LeaveType.UNPAID_LEAVE)
    assert request.hr.status == ApprovalStatus.PENDING

    request = decide(request, Stage.HR, HR)
    assert request.status == LeaveStatus.HR_APPROVED
    assert request.director.status == ApprovalStatus.PENDING

    request = decide(request, Stage.DIRECTOR, DIRECTOR)
    assert request.status == LeaveStatus.APPROVED


def test_all_three_stages_status_stays_manager_approved_after_hr():
    # Precedence puts "manager approved and HR required" ahead of "HR approved
    # and director required", so the HR_APPROVED status is never reached here.
    request = decide(new_request(is_urgent=True), Stage.MANAGER, LEAD)
    request = decide(request, Stage.HR, HR)
    assert request.hr.status == APPROVED
    assert request.status == LeaveStatus.MANAGER_APPROVED
    assert request.next_approver == Stage.DIRECTOR

    request = decide(request, Stage.DIRECTOR, DIRECTOR)
    assert request.status == LeaveStatus.APPROVED


def test_manager_approval_without_hr_approves_even_when_director_required():
    # Rule "manager approved and HR not required" comes before any director check.
    request = LeaveRequest(
        id=1,
        user_id=OWNER.user_id,
        leave_type=LeaveType.ANNUAL_LEAVE,
        start_date=date(2025, 3, 17),
        end_date=date(2025, 3, 21),
        return_date=date(2025, 3, 24),
        total_days=Decimal(5),
        requires_manager_approval=True,
        requires_hr_approval=False,
        requires_director_approval=True,
        manager=StageApproval(status=ApprovalStatus.PENDING),
    )
    assert decide(request, Stage.MANAGER, LEAD).status == LeaveStatus.APPROVED


def test_escalation_opens_director_stage():
    request = decide(new_request(), Stage.MANAGER, LEAD, escalate_to_director=True)
    assert request.requires_director_approval
    assert request.director.status == ApprovalStatus.PENDING
    assert request.status == LeaveStatus.MANAGER_APPROVED
    assert request.next_approver == Stage.HR


def test_escalated_request_waits_for_hr_before_director():
    request = decide(new_request(), Stage.MANAGER, LEAD, escalate_to_director=True)
    with pytest.raises(PrerequisiteNotMet):
        decide(request, Stage.DIRECTOR, DIRECTOR)

    request = decide(request, Stage.HR, HR)
    assert request.status == LeaveStatus.MANAGER_APPROVED
    request = decide(request, Stage.DIRECTOR, DIRECTOR)
    assert request.status == LeaveStatus.APPROVED
    assert (request.manager.status, request.hr.status, request.director.status) == (APPROVED,) * 3


def test_director_cannot_skip_pending_manager():
    request = replace(new_request(is_urgent=True), director=StageApproval(status=ApprovalStatus.PENDING))
    with pytest.raises(PrerequisiteNotMet):
        decide(request, Stage.DIRECTOR, DIRECTOR)


def test_escalation_at_director_stage_is_ignored():
    request = decide(new_request(LeaveType.UNPAID_LEAVE), Stage.HR, HR)
    request = decide(request, Stage.DIRECTOR, DIRECTOR, escalate_to_director=True)
    assert request.status == LeaveStatus.APPROVED


def test_final_approval_date_is_kept():
    earlier = datetime(2025, 3, 1, 9, 0)
    request = replace(new_request(), status=LeaveStatus.APPROVED, final_approval_date=earlier)
    assert recompute_status(request, NOW).final_approval_date == earlier


def test_recompute_without_decisions_is_a_no_op():
    request = new_request()
    assert recompute_status(request, NOW) == request


# ── Cancellation ────────────────────────────────────────────────────
def test_owner_cancels_pending_request():
    request = cancel(new_request(), caller=OWNER, reason="plans changed", now=NOW)
    assert request.status == LeaveStatus.CANCELLED
    assert request.cancel_reason == "plans changed"
    assert request.cancelled_date == NOW


def test_approver_may_cancel_approved_future_leave():
    request = decide(decide(new_request(), Stage.MANAGER, LEAD), Stage.HR, HR)
    assert cancel(request, caller=LEAD, reason=None, now=NOW).status == LeaveStatus.CANCELLED


def test_stranger_cannot_cancel():
    with pytest.raises(NotAuthorized):
        cancel(new_request(), caller=STRANGER, reason=None, now=NOW)


def test_started_leave_cannot_be_cancelled():
    request = new_request(start=date(2025, 3, 11), end=date(2025, 3, 14))
    with pytest.raises(CannotCancel):
        cancel(request, caller=OWNER, reason=None, now=datetime(2025, 3, 11, 8, 0))


def test_rejected_request_cannot_be_cancelled():
    request = decide(new_request(), Stage.MANAGER, LEAD, REJECTED)
    with pytest.raises(CannotCancel):
        cancel(request, caller=OWNER, reason=None, now=NOW)


# ── Derived fields & balance ────────────────────────────────────────
def test_request_timeline_helpers():
    request = decide(decide(new_request(), Stage.MANAGER, LEAD), Stage.HR, HR)
    assert request.days_until_start(date(2025, 3, 10)) == 7
    assert request.days_until_start(date(2025, 3, 20)) == 0
    assert request.is_active(date(2025, 3, 18))
    assert not request.is_active(date(2025, 3, 24))
    assert request.can_be_cancelled(date(2025, 3, 16))
    assert not request.can_be_cancelled(date(2025, 3, 17))
    assert not request.is_pending


def test_balance_lines():
    balance = build_balance(
        1, 2025, 20, {LeaveType.ANNUAL_LEAVE: Decimal(5), LeaveType.RTT: Decimal(2)}
    )
    assert balance.line(LeaveType.ANNUAL_LEAVE).entitlement == Decimal(20)
    assert balance.remaining(LeaveType.ANNUAL_LEAVE) == Decimal(15)
    assert balance.remaining(LeaveType.RTT) == Decimal(10)
    assert balance.remaining(LeaveType.SICK_LEAVE) == Decimal(365)
    assert balance.remaining(LeaveType.OTHER) == Decimal(0)
    assert balance.total_taken == Decimal(7)

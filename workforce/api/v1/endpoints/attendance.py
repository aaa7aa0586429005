"""
Attendance endpoints: clock-in/out, breaks, history, statistics, approvals.

- Every route requires an authenticated caller.
- History and stats of another user need HR/director rights or to be
  that user's manager.
- Approval routes require a manager role.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Request

from workforce.api.v1.deps import get_attendance_tracker, get_caller
from workforce.domain.roles import Caller
from workforce.schemas.attendance import (ApproveAttendanceRequest,
                                          AttendanceRead, AttendanceStatsRead,
                                          BatchApprovalRead, ClockInRequest,
                                          ClockOutRequest, TodayStatsRead)
from workforce.services.attendance import AttendanceTracker

router = APIRouter(prefix="/attendance", tags=["attendance"])


# ── Daily lifecycle ─────────────────────────────────────────────────
@router.post("/clock-in", response_model=AttendanceRead, status_code=201)
async def clock_in(
    body: ClockInRequest,
    request: Request,
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> AttendanceRead:
    result = await tracker.clock_in(
        caller,
        location=body.location,
        declared_status=body.status,
        notes=body.notes,
        is_remote=body.is_remote,
        ip_address=request.client.host if request.client else None,
        device_info=body.device_info or request.headers.get("user-agent"),
    )
    return AttendanceRead.from_record(result.unwrap(), tracker.hours)


@router.post("/clock-out", response_model=AttendanceRead)
async def clock_out(
    body: ClockOutRequest,
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> AttendanceRead:
    result = await tracker.clock_out(caller, notes=body.notes)
    return AttendanceRead.from_record(result.unwrap(), tracker.hours)


@router.post("/break/start", response_model=AttendanceRead)
async def start_break(
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> AttendanceRead:
    result = await tracker.start_break(caller)
    return AttendanceRead.from_record(result.unwrap(), tracker.hours)


@router.post("/break/end", response_model=AttendanceRead)
async def end_break(
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> AttendanceRead:
    result = await tracker.end_break(caller)
    return AttendanceRead.from_record(result.unwrap(), tracker.hours)


@router.get("/status", response_model=AttendanceRead)
async def current_status(
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> AttendanceRead:
    """Today's record; ``phase`` is ``EMPTY`` before the first clock-in."""
    result = await tracker.current_status(caller)
    return AttendanceRead.from_record(result.unwrap(), tracker.hours)


# ── History & statistics ────────────────────────────────────────────
@router.get("/my-history", response_model=list[AttendanceRead])
async def my_history(
    start_date: date | None = None,
    end_date: date | None = None,
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> list[AttendanceRead]:
    result = await tracker.history(caller, caller.user_id, start_date, end_date)
    return [AttendanceRead.from_record(r, tracker.hours) for r in result.unwrap()]


@router.get("/user/{user_id}/history", response_model=list[AttendanceRead])
async def user_history(
    user_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> list[AttendanceRead]:
    result = await tracker.history(caller, user_id, start_date, end_date)
    return [AttendanceRead.from_record(r, tracker.hours) for r in result.unwrap()]


@router.get("/my-stats", response_model=AttendanceStatsRead)
async def my_stats(
    start_date: date | None = None,
    end_date: date | None = None,
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> AttendanceStatsRead:
    result = await tracker.stats(caller, caller.user_id, start_date, end_date)
    return AttendanceStatsRead.model_validate(result.unwrap())


@router.get("/user/{user_id}/stats", response_model=AttendanceStatsRead)
async def user_stats(
    user_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> AttendanceStatsRead:
    result = await tracker.stats(caller, user_id, start_date, end_date)
    return AttendanceStatsRead.model_validate(result.unwrap())


@router.get("/today/stats", response_model=TodayStatsRead)
async def today_stats(
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> TodayStatsRead:
    result = await tracker.today_stats(caller)
    return TodayStatsRead.model_validate(result.unwrap())


# ── Approval ────────────────────────────────────────────────────────
@router.put("/approve", response_model=BatchApprovalRead)
async def approve(
    body: ApproveAttendanceRequest,
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> BatchApprovalRead:
    """Approve a batch of records; ids outside the caller's authority come back in ``skipped``."""
    result = await tracker.approve_batch(caller, body.attendance_ids)
    return BatchApprovalRead.model_validate(result.unwrap())


@router.get("/pending-approvals", response_model=list[AttendanceRead])
async def pending_approvals(
    caller: Caller = Depends(get_caller),
    tracker: AttendanceTracker = Depends(get_attendance_tracker),
) -> list[AttendanceRead]:
    result = await tracker.pending_approvals(caller)
    return [AttendanceRead.from_record(r, tracker.hours) for r in result.unwrap()]

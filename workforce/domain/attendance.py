"""
Daily attendance state machine.

One :class:`AttendanceRecord` exists per user and calendar day.  It moves
through ``EMPTY → CLOCKED_IN → ON_BREAK → CLOCKED_IN → CLOCKED_OUT`` and is
never mutated in place: :func:`apply` takes the current record and an
event and returns the next record, raising a :class:`DomainError` when the
event is not allowed in the current phase.

Timestamps are naive wall-clock datetimes in the organisation's local
time, so lateness is a plain ``time`` comparison.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from workforce.domain.calendar import count_working_days
from workforce.domain.errors import (AlreadyClockedIn, AlreadyClockedOut,
                                     BreakAlreadyTaken, BreakInProgress,
                                     NoClockInFound, NoOpenBreak)

_CENTS = Decimal("0.01")
_ZERO = Decimal("0.00")


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    HALF_DAY = "HALF_DAY"
    REMOTE = "REMOTE"
    SICK_LEAVE = "SICK_LEAVE"
    VACATION = "VACATION"
    BUSINESS_TRIP = "BUSINESS_TRIP"
    TRAINING = "TRAINING"
    OTHER = "OTHER"


class DayPhase(str, Enum):
    EMPTY = "EMPTY"
    CLOCKED_IN = "CLOCKED_IN"
    ON_BREAK = "ON_BREAK"
    CLOCKED_OUT = "CLOCKED_OUT"


@dataclass(frozen=True)
class WorkingHours:
    """Working-day reference values used for lateness and overtime."""

    standard_start: time = time(9, 0)
    standard_end: time = time(17, 30)
    standard_daily_hours: Decimal = Decimal(8)
    overtime_review_threshold: Decimal = Decimal(2)


DEFAULT_WORKING_HOURS = WorkingHours()


@dataclass(frozen=True)
class AttendanceRecord:
    user_id: int
    date: date
    id: Optional[int] = None
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    hours_worked: Optional[Decimal] = None
    break_duration: Optional[Decimal] = None
    overtime_hours: Decimal = _ZERO
    status: AttendanceStatus = AttendanceStatus.PRESENT
    location: Optional[str] = None
    notes: Optional[str] = None
    is_remote: bool = False
    ip_address: Optional[str] = None
    device_info: Optional[str] = None
    approved: bool = False
    approved_by: Optional[int] = None
    approval_date: Optional[datetime] = None

    @classmethod
    def empty(cls, user_id: int, day: date) -> "AttendanceRecord":
        return cls(user_id=user_id, date=day)

    @property
    def phase(self) -> DayPhase:
        if self.clock_in is None:
            return DayPhase.EMPTY
        if self.clock_out is not None:
            return DayPhase.CLOCKED_OUT
        if self.is_on_break:
            return DayPhase.ON_BREAK
        return DayPhase.CLOCKED_IN

    @property
    def is_on_break(self) -> bool:
        return self.break_start is not None and self.break_end is None

    @property
    def has_completed_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    @property
    def is_complete(self) -> bool:
        return self.clock_in is not None and self.clock_out is not None


# ── Events ──────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ClockIn:
    at: datetime
    location: Optional[str] = None
    declared_status: Optional[AttendanceStatus] = None
    notes: Optional[str] = None
    is_remote: bool = False
    ip_address: Optional[str] = None
    device_info: Optional[str] = None


@dataclass(frozen=True)
class ClockOut:
    at: datetime
    notes: Optional[str] = None


@dataclass(frozen=True)
class StartBreak:
    at: datetime


@dataclass(frozen=True)
class EndBreak:
    at: datetime


@dataclass(frozen=True)
class Approve:
    approver_id: int
    at: datetime


AttendanceEvent = Union[ClockIn, ClockOut, StartBreak, EndBreak, Approve]


# ── Predicates & time accounting ────────────────────────────────────
def is_late(record: AttendanceRecord, hours: WorkingHours = DEFAULT_WORKING_HOURS) -> bool:
    if record.clock_in is None:
        return False
    return record.clock_in.time() > hours.standard_start


def is_early_departure(
    record: AttendanceRecord, hours: WorkingHours = DEFAULT_WORKING_HOURS
) -> bool:
    if record.clock_out is None:
        return False
    return record.clock_out.time() < hours.standard_end


def needs_review(record: AttendanceRecord, hours: WorkingHours = DEFAULT_WORKING_HOURS) -> bool:
    """Days with significant overtime, remote work or half days need a manager's sign-off."""
    return (
        record.overtime_hours > hours.overtime_review_threshold
        or record.is_remote
        or record.status == AttendanceStatus.HALF_DAY
    )


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() / 60)


def _minutes_to_hours(minutes: int) -> Decimal:
    return (Decimal(minutes) / Decimal(60)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def compute_hours(
    record: AttendanceRecord, hours: WorkingHours = DEFAULT_WORKING_HOURS
) -> AttendanceRecord:
    """Recompute worked, break and overtime hours once both clock stamps exist."""
    if record.clock_in is None or record.clock_out is None:
        return record

    total_minutes = _whole_minutes(record.clock_out - record.clock_in)
    break_duration = record.break_duration
    if record.has_completed_break:
        break_minutes = _whole_minutes(record.break_end - record.break_start)  # type: ignore[operator]
        break_duration = _minutes_to_hours(break_minutes)
        total_minutes -= break_minutes

    worked = _minutes_to_hours(total_minutes)
    overtime = max(_ZERO, worked - hours.standard_daily_hours).quantize(_CENTS)
    return replace(
        record,
        hours_worked=worked,
        break_duration=break_duration,
        overtime_hours=overtime,
    )


def _append_note(existing: Optional[str], extra: Optional[str]) -> Optional[str]:
    if not extra:
        return existing
    return f"{existing} | {extra}" if existing else extra


# ── Transitions ─────────────────────────────────────────────────────
def _clock_in(record: AttendanceRecord, event: ClockIn, hours: WorkingHours) -> AttendanceRecord:
    if record.clock_in is not None:
        raise AlreadyClockedIn()

    updated = replace(
        record,
        clock_in=event.at,
        location=event.location,
        status=event.declared_status or AttendanceStatus.PRESENT,
        notes=event.notes,
        is_remote=event.is_remote,
        ip_address=event.ip_address,
        device_info=event.device_info,
    )
    if is_late(updated, hours):
        updated = replace(updated, status=AttendanceStatus.LATE)
    return updated


def _clock_out(record: AttendanceRecord, event: ClockOut, hours: WorkingHours) -> AttendanceRecord:
    if record.clock_in is None:
        raise NoClockInFound("You must clock in first")
    if record.clock_out is not None:
        raise AlreadyClockedOut()

    updated = compute_hours(
        replace(record, clock_out=event.at, notes=_append_note(record.notes, event.notes)),
        hours,
    )
    return replace(updated, approved=not needs_review(updated, hours))


def _start_break(record: AttendanceRecord, event: StartBreak, hours: WorkingHours) -> AttendanceRecord:
    if record.clock_in is None:
        raise NoClockInFound("You must clock in before starting a break")
    if record.is_on_break:
        raise BreakInProgress()
    if record.has_completed_break:
        raise BreakAlreadyTaken()
    return replace(record, break_start=event.at)


def _end_break(record: AttendanceRecord, event: EndBreak, hours: WorkingHours) -> AttendanceRecord:
    if not record.is_on_break:
        raise NoOpenBreak()
    if record.clock_out is None:
        return replace(record, break_end=event.at)
    # Closed after clock-out: the break cannot outlast the clocked span
    updated = replace(record, break_end=min(event.at, record.clock_out))
    return compute_hours(updated, hours)


def _approve(record: AttendanceRecord, event: Approve, hours: WorkingHours) -> AttendanceRecord:
    return replace(record, approved=True, approved_by=event.approver_id, approval_date=event.at)


_TRANSITIONS: dict[type, Callable[[AttendanceRecord, object, WorkingHours], AttendanceRecord]] = {
    ClockIn: _clock_in,  # type: ignore[dict-item]
    ClockOut: _clock_out,  # type: ignore[dict-item]
    StartBreak: _start_break,  # type: ignore[dict-item]
    EndBreak: _end_break,  # type: ignore[dict-item]
    Approve: _approve,  # type: ignore[dict-item]
}


def apply(
    record: AttendanceRecord,
    event: AttendanceEvent,
    hours: WorkingHours = DEFAULT_WORKING_HOURS,
) -> AttendanceRecord:
    """Return the record that results from applying *event* to *record*."""
    try:
        handler = _TRANSITIONS[type(event)]
    except KeyError:
        raise TypeError(f"Unsupported attendance event: {type(event).__name__}") from None
    return handler(record, event, hours)


# ── Period statistics ───────────────────────────────────────────────
@dataclass(frozen=True)
class AttendanceStats:
    user_id: int
    period_start: date
    period_end: date
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    remote_days: int
    total_hours_worked: Decimal
    average_hours_per_day: Decimal
    total_overtime_hours: Decimal
    attendance_rate: float
    punctuality_rate: float


def summarize(
    user_id: int, records: Iterable[AttendanceRecord], period_start: date, period_end: date
) -> AttendanceStats:
    """Aggregate one user's records over ``[period_start, period_end]``."""
    rows = [r for r in records if period_start <= r.date <= period_end]
    by_status = Counter(r.status for r in rows)
    total_days = len(rows)
    total_hours = sum((r.hours_worked or _ZERO for r in rows), _ZERO)
    total_overtime = sum((r.overtime_hours for r in rows), _ZERO)
    working_days = count_working_days(period_start, period_end)
    present = by_status[AttendanceStatus.PRESENT]
    late = by_status[AttendanceStatus.LATE]

    attendance_rate = present / working_days * 100 if working_days else 0.0
    punctuality_rate = (total_days - late) * 100 / total_days if total_days else 0.0
    average = (
        (total_hours / total_days).quantize(_CENTS, rounding=ROUND_HALF_UP) if total_days else _ZERO
    )

    return AttendanceStats(
        user_id=user_id,
        period_start=period_start,
        period_end=period_end,
        total_days=total_days,
        present_days=present,
        absent_days=by_status[AttendanceStatus.ABSENT],
        late_days=late,
        remote_days=by_status[AttendanceStatus.REMOTE],
        total_hours_worked=total_hours,
        average_hours_per_day=average,
        total_overtime_hours=total_overtime,
        attendance_rate=round(attendance_rate, 2),
        punctuality_rate=round(punctuality_rate, 2),
    )

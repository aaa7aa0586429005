"""Pydantic schemas for attendance records, approvals and statistics."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from workforce.domain.attendance import (AttendanceRecord, AttendanceStatus,
                                         DayPhase, WorkingHours,
                                         is_early_departure, is_late)


# ── Commands ────────────────────────────────────────────────────────
class ClockInRequest(BaseModel):
    location: str | None = Field(default=None, max_length=255)
    status: AttendanceStatus | None = None
    notes: str | None = Field(default=None, max_length=2000)
    is_remote: bool = False
    device_info: str | None = Field(default=None, max_length=500)


class ClockOutRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class ApproveAttendanceRequest(BaseModel):
    attendance_ids: list[int] = Field(min_length=1, max_length=500)


# ── Responses ───────────────────────────────────────────────────────
class AttendanceRead(BaseModel):
    id: int | None
    user_id: int
    date: dt.date
    phase: DayPhase
    clock_in: dt.datetime | None
    clock_out: dt.datetime | None
    break_start: dt.datetime | None
    break_end: dt.datetime | None
    hours_worked: float | None
    break_duration: float | None
    overtime_hours: float
    status: AttendanceStatus
    location: str | None
    notes: str | None
    is_remote: bool
    approved: bool
    approved_by: int | None
    approval_date: dt.datetime | None
    is_late: bool
    is_early_departure: bool

    @classmethod
    def from_record(cls, record: AttendanceRecord, hours: WorkingHours) -> "AttendanceRead":
        return cls(
            id=record.id,
            user_id=record.user_id,
            date=record.date,
            phase=record.phase,
            clock_in=record.clock_in,
            clock_out=record.clock_out,
            break_start=record.break_start,
            break_end=record.break_end,
            hours_worked=record.hours_worked,
            break_duration=record.break_duration,
            overtime_hours=record.overtime_hours,
            status=record.status,
            location=record.location,
            notes=record.notes,
            is_remote=record.is_remote,
            approved=record.approved,
            approved_by=record.approved_by,
            approval_date=record.approval_date,
            is_late=is_late(record, hours),
            is_early_departure=is_early_departure(record, hours),
        )


class BatchApprovalRead(BaseModel):
    approved: list[int]
    skipped: list[int]

    model_config = {"from_attributes": True}


class AttendanceStatsRead(BaseModel):
    user_id: int
    period_start: dt.date
    period_end: dt.date
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    remote_days: int
    total_hours_worked: float
    average_hours_per_day: float
    total_overtime_hours: float
    attendance_rate: float
    punctuality_rate: float

    model_config = {"from_attributes": True}


class TodayStatsRead(BaseModel):
    date: dt.date
    total_employees: int
    present: int
    late: int
    remote: int
    on_break: int
    clocked_out: int
    absent: int
    attendance_rate: float

    model_config = {"from_attributes": True}

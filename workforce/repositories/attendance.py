"""
Attendance persistence: maps ``attendance`` rows to :class:`AttendanceRecord`.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.domain.attendance import AttendanceRecord, AttendanceStatus
from workforce.models.attendance import Attendance
from workforce.models.user import User

_COPIED_FIELDS = (
    "clock_in",
    "clock_out",
    "break_start",
    "break_end",
    "hours_worked",
    "break_duration",
    "location",
    "ip_address",
    "device_info",
    "notes",
    "is_remote",
    "approved",
    "approval_date",
)


def to_record(row: Attendance) -> AttendanceRecord:
    return AttendanceRecord(
        id=row.id,
        user_id=row.user_id,
        date=row.date,
        status=AttendanceStatus(row.status),
        overtime_hours=row.overtime_hours if row.overtime_hours is not None else Decimal("0.00"),
        approved_by=row.approved_by_id,
        **{name: getattr(row, name) for name in _COPIED_FIELDS},
    )


def _copy_into(record: AttendanceRecord, row: Attendance) -> None:
    for name in _COPIED_FIELDS:
        setattr(row, name, getattr(record, name))
    row.status = record.status.value
    row.overtime_hours = record.overtime_hours
    row.approved_by_id = record.approved_by


class AttendanceRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_by_user_and_date(
        self, user_id: int, day: date, *, lock: bool = False
    ) -> AttendanceRecord | None:
        query = select(Attendance).where(Attendance.user_id == user_id, Attendance.date == day)
        if lock:
            query = query.with_for_update()
        row = (await self._db.execute(query)).scalar_one_or_none()
        return to_record(row) if row else None

    async def find_all_by_id(self, record_ids: Iterable[int]) -> list[AttendanceRecord]:
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            return []
        result = await self._db.execute(
            select(Attendance).where(Attendance.id.in_(ids)).order_by(Attendance.id).with_for_update()
        )
        return [to_record(row) for row in result.scalars().all()]

    async def find_by_user_between(
        self, user_id: int, start: date, end: date
    ) -> list[AttendanceRecord]:
        result = await self._db.execute(
            select(Attendance)
            .where(Attendance.user_id == user_id, Attendance.date.between(start, end))
            .order_by(Attendance.date.desc())
        )
        return [to_record(row) for row in result.scalars().all()]

    async def find_for_date(self, day: date) -> list[AttendanceRecord]:
        result = await self._db.execute(
            select(Attendance).where(Attendance.date == day).order_by(Attendance.clock_in.asc())
        )
        return [to_record(row) for row in result.scalars().all()]

    async def find_pending_approvals(
        self, overtime_threshold: Decimal, *, manager_id: int | None = None
    ) -> list[AttendanceRecord]:
        """Unapproved records that need a reviewer, optionally limited to one manager's reports."""
        query = select(Attendance).where(
            Attendance.approved.is_(False),
            Attendance.clock_out.is_not(None),
            or_(
                Attendance.overtime_hours > overtime_threshold,
                Attendance.is_remote.is_(True),
                Attendance.status.in_(["REMOTE", "HALF_DAY"]),
            ),
        )
        if manager_id is not None:
            query = query.join(User, Attendance.user_id == User.id).where(User.manager_id == manager_id)
        result = await self._db.execute(query.order_by(Attendance.date.desc(), Attendance.id))
        return [to_record(row) for row in result.scalars().all()]

    async def save(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert or update *record* and flush; the caller owns the commit."""
        if record.id is None:
            row = Attendance(user_id=record.user_id, date=record.date)
            self._db.add(row)
        else:
            row = await self._db.get(Attendance, record.id)
            if row is None:
                raise LookupError(f"Attendance {record.id} vanished during update")
        _copy_into(record, row)
        await self._db.flush()
        return to_record(row)

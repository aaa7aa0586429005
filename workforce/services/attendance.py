"""
AttendanceTracker: clock-in/out, breaks and approval of daily records.

Each public method is one transaction.  The daily record is read with a
row lock, the pure transition from :mod:`workforce.domain.attendance` is
applied and the result written back; the ``(user_id, date)`` unique
constraint turns a lost clock-in race into :class:`AlreadyClockedIn`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.domain.attendance import (Approve, AttendanceRecord,
                                         AttendanceStats, AttendanceStatus,
                                         ClockIn, ClockOut, DayPhase,
                                         EndBreak, StartBreak, WorkingHours,
                                         apply, summarize)
from workforce.domain.errors import (AlreadyClockedIn, InvalidDateRange,
                                     NotAuthorized, RoleNotEligible)
from workforce.domain.roles import Caller
from workforce.repositories.attendance import AttendanceRepository
from workforce.repositories.users import OrgDirectory, UserRepository
from workforce.services.base import (Clock, Service, local_now,
                                     returns_result,
                                     working_hours_from_settings)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DAYS = 30


@dataclass(frozen=True)
class BatchApproval:
    approved: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class TodayStats:
    date: date
    total_employees: int
    present: int
    late: int
    remote: int
    on_break: int
    clocked_out: int
    absent: int
    attendance_rate: float


class AttendanceTracker(Service):
    def __init__(
        self,
        db: AsyncSession,
        *,
        clock: Clock = local_now,
        hours: Optional[WorkingHours] = None,
    ) -> None:
        super().__init__(db, clock=clock)
        self.hours = hours or working_hours_from_settings()
        self._records = AttendanceRepository(db)
        self._users = UserRepository(db)
        self._org = OrgDirectory(db)

    async def _today(self, user_id: int, day: date) -> AttendanceRecord:
        current = await self._records.find_by_user_and_date(user_id, day, lock=True)
        return current or AttendanceRecord.empty(user_id, day)

    async def _require_view(self, caller: Caller, user_id: int) -> None:
        if user_id == caller.user_id:
            return
        manager_id = await self._org.manager_of(user_id)
        if not caller.can_view(user_id, manager_id):
            raise NotAuthorized("You cannot view another user's attendance")

    # ── Daily lifecycle ─────────────────────────────────────────────
    @returns_result
    async def clock_in(
        self,
        caller: Caller,
        *,
        location: Optional[str] = None,
        declared_status: Optional[AttendanceStatus] = None,
        notes: Optional[str] = None,
        is_remote: bool = False,
        ip_address: Optional[str] = None,
        device_info: Optional[str] = None,
    ) -> AttendanceRecord:
        if not caller.requires_time_tracking():
            raise RoleNotEligible()

        now = self.clock()
        current = await self._today(caller.user_id, now.date())
        record = apply(
            current,
            ClockIn(
                at=now,
                location=location,
                declared_status=declared_status,
                notes=notes,
                is_remote=is_remote,
                ip_address=ip_address,
                device_info=device_info,
            ),
            self.hours,
        )
        try:
            saved = await self._records.save(record)
            await self.db.commit()
        except IntegrityError:
            raise AlreadyClockedIn() from None

        logger.info("User %d clocked in at %s (%s)", caller.user_id, now.isoformat(), saved.status.value)
        return saved

    @returns_result
    async def clock_out(self, caller: Caller, *, notes: Optional[str] = None) -> AttendanceRecord:
        now = self.clock()
        current = await self._today(caller.user_id, now.date())
        saved = await self._records.save(apply(current, ClockOut(at=now, notes=notes), self.hours))
        await self.db.commit()
        logger.info(
            "User %d clocked out: %s h worked, %s h overtime",
            caller.user_id,
            saved.hours_worked,
            saved.overtime_hours,
        )
        return saved

    @returns_result
    async def start_break(self, caller: Caller) -> AttendanceRecord:
        now = self.clock()
        current = await self._today(caller.user_id, now.date())
        saved = await self._records.save(apply(current, StartBreak(at=now), self.hours))
        await self.db.commit()
        logger.info("User %d started a break", caller.user_id)
        return saved

    @returns_result
    async def end_break(self, caller: Caller) -> AttendanceRecord:
        now = self.clock()
        current = await self._today(caller.user_id, now.date())
        saved = await self._records.save(apply(current, EndBreak(at=now), self.hours))
        await self.db.commit()
        logger.info("User %d ended a break", caller.user_id)
        return saved

    # ── Approval ────────────────────────────────────────────────────
    @returns_result
    async def approve_batch(self, caller: Caller, record_ids: Iterable[int]) -> BatchApproval:
        """Approve every record the caller has authority over; the rest are skipped."""
        if not caller.is_manager_role():
            raise NotAuthorized("Only managers can approve attendance records")

        requested = list(dict.fromkeys(record_ids))
        records = await self._records.find_all_by_id(requested)
        managers = await self._org.managers_of(r.user_id for r in records)
        now = self.clock()

        approved: list[int] = []
        for record in records:
            if not caller.has_authority_over(record.user_id, managers.get(record.user_id)):
                logger.debug("Skipping attendance %d: no authority over user %d", record.id, record.user_id)
                continue
            await self._records.save(apply(record, Approve(approver_id=caller.user_id, at=now), self.hours))
            approved.append(record.id)  # type: ignore[arg-type]
        await self.db.commit()

        skipped = [record_id for record_id in requested if record_id not in approved]
        logger.info(
            "User %d approved %d attendance record(s), skipped %d",
            caller.user_id,
            len(approved),
            len(skipped),
        )
        return BatchApproval(approved=approved, skipped=skipped)

    @returns_result
    async def pending_approvals(self, caller: Caller) -> list[AttendanceRecord]:
        if not caller.is_manager_role():
            raise NotAuthorized("Only managers can review attendance approvals")
        manager_id = None if caller.can_manage_employees() else caller.user_id
        return await self._records.find_pending_approvals(
            self.hours.overtime_review_threshold, manager_id=manager_id
        )

    # ── Queries ─────────────────────────────────────────────────────
    @returns_result
    async def current_status(self, caller: Caller) -> AttendanceRecord:
        """Today's record, or an empty shell when the caller has not clocked in yet."""
        today = self.clock().date()
        current = await self._records.find_by_user_and_date(caller.user_id, today)
        return current or AttendanceRecord.empty(caller.user_id, today)

    def _period(self, start: Optional[date], end: Optional[date]) -> tuple[date, date]:
        end = end or self.clock().date()
        start = start or end - timedelta(days=DEFAULT_HISTORY_DAYS)
        if end < start:
            raise InvalidDateRange()
        return start, end

    @returns_result
    async def history(
        self,
        caller: Caller,
        user_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[AttendanceRecord]:
        await self._require_view(caller, user_id)
        start, end = self._period(start, end)
        return await self._records.find_by_user_between(user_id, start, end)

    @returns_result
    async def stats(
        self,
        caller: Caller,
        user_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> AttendanceStats:
        await self._require_view(caller, user_id)
        start, end = self._period(start, end)
        records = await self._records.find_by_user_between(user_id, start, end)
        return summarize(user_id, records, start, end)

    @returns_result
    async def today_stats(self, caller: Caller) -> TodayStats:
        if not caller.is_manager_role():
            raise NotAuthorized("Only managers can view company-wide attendance")

        today = self.clock().date()
        records = [r for r in await self._records.find_for_date(today) if r.clock_in is not None]
        total = await self._users.count_time_tracked()
        phases = [r.phase for r in records]
        present = len(records)

        return TodayStats(
            date=today,
            total_employees=total,
            present=present,
            late=sum(1 for r in records if r.status == AttendanceStatus.LATE),
            remote=sum(1 for r in records if r.is_remote or r.status == AttendanceStatus.REMOTE),
            on_break=phases.count(DayPhase.ON_BREAK),
            clocked_out=phases.count(DayPhase.CLOCKED_OUT),
            absent=max(0, total - present),
            attendance_rate=round(present * 100 / total, 2) if total else 0.0,
        )

"""
Leave request persistence: maps ``leave_requests`` rows to the workflow value.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.domain.leave import (IN_REVIEW_STATUSES, ApprovalStatus,
                                    LeaveRequest, LeaveStatus, LeaveType,
                                    Stage, StageApproval)
from workforce.models.leave import LeaveRequest as LeaveRequestRow
from workforce.models.user import User

_COPIED_FIELDS = (
    "user_id",
    "employee_code",
    "start_date",
    "end_date",
    "return_date",
    "total_days",
    "reason",
    "emergency_contact",
    "replacement_person",
    "handover_notes",
    "requires_manager_approval",
    "requires_hr_approval",
    "requires_director_approval",
    "is_urgent",
    "submitted_date",
    "final_approval_date",
    "rejection_reason",
    "cancelled_date",
    "cancel_reason",
)

# stage -> (status, approver, date, comments) column names
_STAGE_COLUMNS = {
    Stage.MANAGER: (
        "manager_approval_status",
        "approved_by_manager_id",
        "manager_approval_date",
        "manager_comments",
    ),
    Stage.HR: ("hr_approval_status", "approved_by_hr_id", "hr_approval_date", "hr_comments"),
    Stage.DIRECTOR: (
        "director_approval_status",
        "approved_by_director_id",
        "director_approval_date",
        "director_comments",
    ),
}


def _stage_from_row(row: LeaveRequestRow, stage: Stage) -> StageApproval:
    status_col, approver_col, date_col, comments_col = _STAGE_COLUMNS[stage]
    status = getattr(row, status_col)
    return StageApproval(
        status=ApprovalStatus(status) if status else None,
        approver_id=getattr(row, approver_col),
        date=getattr(row, date_col),
        comments=getattr(row, comments_col),
    )


def to_request(row: LeaveRequestRow) -> LeaveRequest:
    return LeaveRequest(
        id=row.id,
        leave_type=LeaveType(row.leave_type),
        status=LeaveStatus(row.status),
        manager=_stage_from_row(row, Stage.MANAGER),
        hr=_stage_from_row(row, Stage.HR),
        director=_stage_from_row(row, Stage.DIRECTOR),
        version=row.version,
        **{name: getattr(row, name) for name in _COPIED_FIELDS},
    )


def _copy_into(request: LeaveRequest, row: LeaveRequestRow) -> None:
    for name in _COPIED_FIELDS:
        setattr(row, name, getattr(request, name))
    row.leave_type = request.leave_type.value
    row.status = request.status.value
    for stage, columns in _STAGE_COLUMNS.items():
        approval = request.stage(stage)
        status_col, approver_col, date_col, comments_col = columns
        setattr(row, status_col, approval.status.value if approval.status else None)
        setattr(row, approver_col, approval.approver_id)
        setattr(row, date_col, approval.date)
        setattr(row, comments_col, approval.comments)


class LeaveRequestRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_by_id(self, request_id: int, *, lock: bool = False) -> LeaveRequest | None:
        query = select(LeaveRequestRow).where(LeaveRequestRow.id == request_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        row = (await self._db.execute(query)).scalar_one_or_none()
        return to_request(row) if row else None

    async def find_by_user(self, user_id: int) -> list[LeaveRequest]:
        result = await self._db.execute(
            select(LeaveRequestRow)
            .where(LeaveRequestRow.user_id == user_id)
            .order_by(LeaveRequestRow.submitted_date.desc(), LeaveRequestRow.id.desc())
        )
        return [to_request(row) for row in result.scalars().all()]

    async def find_overlapping(
        self,
        user_id: int,
        start: date,
        end: date,
        statuses: Iterable[LeaveStatus],
    ) -> list[LeaveRequest]:
        result = await self._db.execute(
            select(LeaveRequestRow).where(
                LeaveRequestRow.user_id == user_id,
                LeaveRequestRow.status.in_([s.value for s in statuses]),
                LeaveRequestRow.start_date <= end,
                LeaveRequestRow.end_date >= start,
            )
        )
        return [to_request(row) for row in result.scalars().all()]

    async def sum_approved_days_by_type_and_year(
        self, user_id: int, year: int
    ) -> dict[LeaveType, Decimal]:
        """Approved working days per leave type for requests starting in *year*."""
        result = await self._db.execute(
            select(LeaveRequestRow.leave_type, func.coalesce(func.sum(LeaveRequestRow.total_days), 0))
            .where(
                LeaveRequestRow.user_id == user_id,
                LeaveRequestRow.status == LeaveStatus.APPROVED.value,
                LeaveRequestRow.start_date.between(date(year, 1, 1), date(year, 12, 31)),
            )
            .group_by(LeaveRequestRow.leave_type)
        )
        return {LeaveType(leave_type): Decimal(str(total)) for leave_type, total in result.all()}

    async def find_pending_for_stage(
        self, stage: Stage, *, manager_id: int | None = None
    ) -> list[LeaveRequest]:
        status_col = getattr(LeaveRequestRow, _STAGE_COLUMNS[stage][0])
        query = select(LeaveRequestRow).where(
            status_col == ApprovalStatus.PENDING.value,
            LeaveRequestRow.status.in_([s.value for s in IN_REVIEW_STATUSES]),
        )
        if manager_id is not None:
            query = query.join(User, LeaveRequestRow.user_id == User.id).where(
                User.manager_id == manager_id
            )
        result = await self._db.execute(
            query.order_by(LeaveRequestRow.is_urgent.desc(), LeaveRequestRow.start_date.asc())
        )
        return [to_request(row) for row in result.scalars().all()]

    async def add(self, request: LeaveRequest) -> LeaveRequest:
        row = LeaveRequestRow()
        _copy_into(request, row)
        self._db.add(row)
        await self._db.flush()
        return to_request(row)

    async def save(self, request: LeaveRequest) -> LeaveRequest:
        """Write a transition back; the version column makes the UPDATE a compare-and-swap.

        Raises ``StaleDataError`` at flush when another transaction has written
        the row since this session loaded it.
        """
        row = await self._db.get(LeaveRequestRow, request.id)
        if row is None:
            raise LookupError(f"Leave request {request.id} vanished during update")
        _copy_into(request, row)
        await self._db.flush()
        return to_request(row)

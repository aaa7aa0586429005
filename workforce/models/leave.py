"""
Leave request model: flattened workflow state.

Each review stage is stored as four columns (status, approver, date,
comments).  ``version`` is bumped on every write so a concurrent stage
transition fails instead of silently overwriting another reviewer.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (Boolean, Column, Date, DateTime, ForeignKey, Index,
                        Integer, Numeric, String, Text)

from workforce.db.base import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (Index("ix_leave_user_dates", "user_id", "start_date", "end_date"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    employee_code: str | None = Column(String(32), nullable=True)  # type: ignore[assignment]
    leave_type: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    start_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    end_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    return_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    total_days: Decimal = Column(Numeric(5, 2), nullable=False)  # type: ignore[assignment]
    reason: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    emergency_contact: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    replacement_person: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    handover_notes: str | None = Column(Text, nullable=True)  # type: ignore[assignment]

    status: str = Column(String(20), nullable=False, default="PENDING", index=True)  # type: ignore[assignment]

    manager_approval_status: str | None = Column(String(10), nullable=True)  # type: ignore[assignment]
    approved_by_manager_id: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    manager_approval_date: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    manager_comments: str | None = Column(Text, nullable=True)  # type: ignore[assignment]

    hr_approval_status: str | None = Column(String(10), nullable=True)  # type: ignore[assignment]
    approved_by_hr_id: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    hr_approval_date: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    hr_comments: str | None = Column(Text, nullable=True)  # type: ignore[assignment]

    director_approval_status: str | None = Column(String(10), nullable=True)  # type: ignore[assignment]
    approved_by_director_id: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    director_approval_date: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    director_comments: str | None = Column(Text, nullable=True)  # type: ignore[assignment]

    requires_manager_approval: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    requires_hr_approval: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    requires_director_approval: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    is_urgent: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]

    submitted_date: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    final_approval_date: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    rejection_reason: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    cancelled_date: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    cancel_reason: str | None = Column(Text, nullable=True)  # type: ignore[assignment]

    version: int = Column(Integer, nullable=False, default=1)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

"""
Attendance model: one row per user per calendar day.

Rows are audit records and are never deleted.  Clock and break stamps
are stored as naive local wall-clock times.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (Boolean, Column, Date, DateTime, ForeignKey, Index,
                        Integer, Numeric, String, Text, UniqueConstraint)

from workforce.db.base import Base


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
        Index("ix_attendance_user_date", "user_id", "date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    date: date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]
    clock_in: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    clock_out: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    break_start: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    break_end: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    hours_worked: Decimal | None = Column(Numeric(5, 2), nullable=True)  # type: ignore[assignment]
    break_duration: Decimal | None = Column(Numeric(5, 2), nullable=True)  # type: ignore[assignment]
    overtime_hours: Decimal = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="PRESENT")  # type: ignore[assignment]
    location: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    ip_address: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    device_info: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    notes: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    is_remote: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    approved: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    approved_by_id: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    approval_date: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

"""
User model: identity, role and org-structure data.

Each row is one person: the role drives authorization, ``manager_id``
points at the direct manager and ``leave_days_entitlement`` is the
annual leave allotment used for balance checks.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Boolean, Column, Date, DateTime, ForeignKey, Integer,
                        String)

from workforce.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    full_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    employee_code: str | None = Column(String(32), unique=True, nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="EMPLOYEE",
        server_default="EMPLOYEE",
    )  # DIRECTOR | HR | TEAM_LEADER | EMPLOYEE | INTERN
    department: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    job_title: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    manager_id: int | None = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # type: ignore[assignment]
    hire_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    leave_days_entitlement: int = Column(Integer, nullable=False, default=25, server_default="25")  # type: ignore[assignment]
    requires_time_tracking: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

"""Pydantic schemas for the employee directory."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from workforce.domain.roles import UserRole


def _normalise_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("Invalid email address")
    return v


class EmployeeCreate(BaseModel):
    email: str
    full_name: str | None = Field(default=None, max_length=200)
    employee_code: str | None = Field(default=None, max_length=32)
    role: UserRole = UserRole.EMPLOYEE
    department: str | None = Field(default=None, max_length=100)
    job_title: str | None = Field(default=None, max_length=100)
    manager_id: int | None = None
    hire_date: dt.date | None = None
    leave_days_entitlement: int = Field(default=25, ge=0, le=366)
    requires_time_tracking: bool = True

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v: object) -> object:
        return UserRole.from_string(v) if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalise_email(v)


class EmployeeUpdate(BaseModel):
    full_name: str | None = Field(default=None, max_length=200)
    employee_code: str | None = Field(default=None, max_length=32)
    role: UserRole | None = None
    department: str | None = Field(default=None, max_length=100)
    job_title: str | None = Field(default=None, max_length=100)
    manager_id: int | None = None
    hire_date: dt.date | None = None
    leave_days_entitlement: int | None = Field(default=None, ge=0, le=366)
    requires_time_tracking: bool | None = None
    is_active: bool | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v: object) -> object:
        return UserRole.from_string(v) if isinstance(v, str) else v


class EmployeeRead(BaseModel):
    id: int
    email: str
    full_name: str | None
    employee_code: str | None
    role: str
    department: str | None
    job_title: str | None
    manager_id: int | None
    hire_date: dt.date | None
    leave_days_entitlement: int
    requires_time_tracking: bool
    is_active: bool
    created_at: dt.datetime | None

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    success: bool
    message: str

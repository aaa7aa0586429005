"""
Employee directory CRUD: the source of truth for roles, managers and
leave entitlements.

- GET /employees/{id} is open to the employee themself, their manager,
  HR and directors.
- Listing and every write require HR or director rights.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.api.v1.deps import get_caller, get_db, require_employee_manager
from workforce.domain.roles import Caller, UserRole
from workforce.models.user import User
from workforce.schemas.user import (DeleteResponse, EmployeeCreate,
                                    EmployeeRead, EmployeeUpdate)

router = APIRouter(prefix="/employees", tags=["employees"])
logger = logging.getLogger(__name__)


async def _get_or_404(db: AsyncSession, employee_id: int) -> User:
    emp = await db.get(User, employee_id)
    if emp is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return emp


async def _check_manager(db: AsyncSession, manager_id: int | None, employee_id: int | None = None) -> None:
    if manager_id is None:
        return
    if manager_id == employee_id:
        raise HTTPException(status_code=400, detail="An employee cannot manage themself")
    manager = await db.get(User, manager_id)
    if manager is None or not manager.is_active:
        raise HTTPException(status_code=400, detail=f"Manager {manager_id} does not exist")
    if employee_id is None:
        return

    # The employee must not appear anywhere above the new manager
    seen = {manager_id}
    current = manager
    while current.manager_id is not None and current.manager_id not in seen:
        if current.manager_id == employee_id:
            raise HTTPException(
                status_code=400,
                detail=f"Employee {employee_id} already manages {manager_id} directly or indirectly",
            )
        seen.add(current.manager_id)
        current = await db.get(User, current.manager_id)
        if current is None:
            break


@router.get("", response_model=list[EmployeeRead])
async def list_employees(
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    search: str | None = None,
    department: str | None = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    _caller: Caller = Depends(require_employee_manager),
) -> list[User]:
    query = select(User).order_by(User.full_name, User.id).offset(skip).limit(limit)
    if not include_inactive:
        query = query.where(User.is_active.is_(True))
    if department:
        query = query.where(User.department == department)
    if search:
        # Escape SQL LIKE metacharacters to prevent wildcard injection
        safe_search = search.replace("%", r"\%").replace("_", r"\_")
        query = query.where(User.full_name.ilike(f"%{safe_search}%", escape="\\"))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    _caller: Caller = Depends(require_employee_manager),
) -> User:
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail=f"Email '{body.email}' already registered")
    await _check_manager(db, body.manager_id)

    data = body.model_dump()
    data["role"] = body.role.value
    if body.role == UserRole.DIRECTOR:
        data["requires_time_tracking"] = False
    employee = User(**data)
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    logger.info("Created employee %d (%s, %s)", employee.id, employee.email, employee.role)
    return employee


@router.get("/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> User:
    emp = await _get_or_404(db, employee_id)
    if not caller.can_view(emp.id, emp.manager_id):
        raise HTTPException(status_code=403, detail="You cannot view this employee")
    return emp


@router.put("/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    _caller: Caller = Depends(require_employee_manager),
) -> User:
    emp = await _get_or_404(db, employee_id)
    changes = body.model_dump(exclude_unset=True)
    if "manager_id" in changes:
        await _check_manager(db, changes["manager_id"], employee_id)
    if changes.get("role") is not None:
        changes["role"] = changes["role"].value

    for field, value in changes.items():
        setattr(emp, field, value)

    await db.commit()
    await db.refresh(emp)
    logger.info("Updated employee %d: %s", employee_id, sorted(changes))
    return emp


@router.delete("/{employee_id}", response_model=DeleteResponse)
async def deactivate_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(require_employee_manager),
) -> DeleteResponse:
    """Soft-delete (deactivate) an employee. Attendance and leave history is preserved."""
    emp = await _get_or_404(db, employee_id)
    if emp.id == caller.user_id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    emp.is_active = False
    await db.commit()
    logger.info("Deactivated employee %d (%s)", employee_id, emp.email)
    return DeleteResponse(success=True, message=f"Employee '{emp.email}' deactivated")

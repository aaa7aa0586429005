"""
FastAPI dependencies: database session, caller identity and services.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.core.security import decode_access_token
from workforce.db.session import async_session_factory
from workforce.domain.roles import Caller
from workforce.models.user import User
from workforce.repositories.users import UserRepository, to_caller
from workforce.services.attendance import AttendanceTracker
from workforce.services.base import Clock, local_now
from workforce.services.leave import LeaveWorkflow

# Token issuance lives with the identity provider; auto_error=False lets the cookie act as fallback
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_clock() -> Clock:
    return local_now


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up an active user."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        final_token = access_token.removeprefix("Bearer ")

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    subject: str | None = payload.get("sub")
    if subject is None or not subject.isdigit():
        raise credentials_exc

    user = await UserRepository(db).get(int(subject))
    if user is None:
        raise credentials_exc
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user account")
    return user


async def get_caller(current_user: User = Depends(get_current_user)) -> Caller:
    return to_caller(current_user)


async def require_employee_manager(caller: Caller = Depends(get_caller)) -> Caller:
    """Only HR and directors maintain the employee directory."""
    if not caller.can_manage_employees():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="HR or director privileges required",
        )
    return caller


# ── Services ────────────────────────────────────────────────────────
def get_attendance_tracker(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AttendanceTracker:
    return AttendanceTracker(db, clock=clock)


def get_leave_workflow(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> LeaveWorkflow:
    return LeaveWorkflow(db, clock=clock)

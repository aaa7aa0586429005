"""
User lookups and the org-structure directory (manager-of / entitlement).
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.domain.errors import ResourceNotFound
from workforce.domain.roles import Caller, UserRole
from workforce.models.user import User


def to_caller(user: User) -> Caller:
    return Caller(
        user_id=user.id,
        role=UserRole.from_string(user.role),
        tracks_time=bool(user.requires_time_tracking),
    )


class UserRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, user_id: int) -> User | None:
        return await self._db.get(User, user_id)

    async def count_time_tracked(self) -> int:
        """Active users expected to clock in (directors never do)."""
        result = await self._db.execute(
            select(func.count(User.id)).where(
                User.is_active.is_(True),
                User.requires_time_tracking.is_(True),
                User.role != UserRole.DIRECTOR.value,
            )
        )
        return int(result.scalar_one())

    async def require(self, user_id: int) -> User:
        user = await self.get(user_id)
        if user is None:
            raise ResourceNotFound(f"User {user_id} not found")
        return user


class OrgDirectory:
    """Answers "who manages whom" and "how many leave days" from the users table."""

    def __init__(self, db: AsyncSession) -> None:
        self._users = UserRepository(db)
        self._db = db

    async def manager_of(self, user_id: int) -> int | None:
        return (await self._users.require(user_id)).manager_id

    async def managers_of(self, user_ids: Iterable[int]) -> dict[int, int | None]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self._db.execute(select(User.id, User.manager_id).where(User.id.in_(ids)))
        return {user_id: manager_id for user_id, manager_id in result.all()}

    async def entitlement_for(self, user_id: int) -> int:
        return (await self._users.require(user_id)).leave_days_entitlement

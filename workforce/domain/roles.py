"""
User roles and the capability table that drives every authorization check.

Each operation asks the table once for the capability it needs instead
of re-deriving it from the role name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    DIRECTOR = "DIRECTOR"
    HR = "HR"
    TEAM_LEADER = "TEAM_LEADER"
    EMPLOYEE = "EMPLOYEE"
    INTERN = "INTERN"

    @classmethod
    def from_string(cls, value: str) -> "UserRole":
        try:
            return cls(value.strip().upper())
        except ValueError:
            valid = ", ".join(r.value for r in cls)
            raise ValueError(f"Invalid role: {value}. Valid roles: {valid}") from None


class Capability(str, Enum):
    TRACK_TIME = "track_time"
    MANAGER_ROLE = "manager_role"
    APPROVE_LEAVES = "approve_leaves"
    MANAGE_EMPLOYEES = "manage_employees"
    REVIEW_HR_STAGE = "review_hr_stage"
    REVIEW_DIRECTOR_STAGE = "review_director_stage"


ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.DIRECTOR: frozenset(
        {
            Capability.MANAGER_ROLE,
            Capability.APPROVE_LEAVES,
            Capability.MANAGE_EMPLOYEES,
            Capability.REVIEW_HR_STAGE,
            Capability.REVIEW_DIRECTOR_STAGE,
        }
    ),
    UserRole.HR: frozenset(
        {
            Capability.TRACK_TIME,
            Capability.MANAGER_ROLE,
            Capability.APPROVE_LEAVES,
            Capability.MANAGE_EMPLOYEES,
            Capability.REVIEW_HR_STAGE,
        }
    ),
    UserRole.TEAM_LEADER: frozenset(
        {
            Capability.TRACK_TIME,
            Capability.MANAGER_ROLE,
            Capability.APPROVE_LEAVES,
        }
    ),
    UserRole.EMPLOYEE: frozenset({Capability.TRACK_TIME}),
    UserRole.INTERN: frozenset({Capability.TRACK_TIME}),
}


def has_capability(role: UserRole, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[role]


@dataclass(frozen=True)
class Caller:
    """Identity resolved from the bearer token for one request."""

    user_id: int
    role: UserRole
    tracks_time: bool = True

    def can(self, capability: Capability) -> bool:
        return has_capability(self.role, capability)

    def can_approve_leaves(self) -> bool:
        return self.can(Capability.APPROVE_LEAVES)

    def can_manage_employees(self) -> bool:
        return self.can(Capability.MANAGE_EMPLOYEES)

    def is_manager_role(self) -> bool:
        return self.can(Capability.MANAGER_ROLE)

    def requires_time_tracking(self) -> bool:
        # Per-user opt-out on top of the role default
        return self.tracks_time and self.can(Capability.TRACK_TIME)

    def has_authority_over(self, owner_id: int, owner_manager_id: int | None) -> bool:
        """HR/director over everyone, otherwise only the owner's direct manager."""
        if self.can_manage_employees():
            return True
        return owner_manager_id is not None and owner_manager_id == self.user_id

    def can_view(self, owner_id: int, owner_manager_id: int | None) -> bool:
        return owner_id == self.user_id or self.has_authority_over(owner_id, owner_manager_id)

"""
Domain error taxonomy shared by the attendance and leave workflows.

Every error carries an :class:`ErrorKind` so the HTTP boundary can map it
without knowing the concrete class: validation problems become 400,
authorization problems 403, missing records 404 and lost races 409.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class DomainError(Exception):
    kind: ErrorKind = ErrorKind.VALIDATION
    default_message = "Operation rejected"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DomainError):
            return NotImplemented
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self), self.message))


# ── Validation ──────────────────────────────────────────────────────
class InvalidDateRange(DomainError):
    default_message = "End date must not be before start date"


class TooSoon(DomainError):
    default_message = "Leave must be requested at least one day in advance"


class OverlappingRequest(DomainError):
    default_message = "This period overlaps another leave request"


class InsufficientBalance(DomainError):
    default_message = "Insufficient leave balance"


class AlreadyClockedIn(DomainError):
    default_message = "Already clocked in today"


class AlreadyClockedOut(DomainError):
    default_message = "Already clocked out today"


class NoClockInFound(DomainError):
    default_message = "No clock-in found for today"


class NoOpenBreak(NoClockInFound):
    default_message = "No break in progress"


class BreakInProgress(DomainError):
    default_message = "A break is already in progress"


class BreakAlreadyTaken(DomainError):
    default_message = "Only one break per day can be recorded"


class AlreadyReviewed(DomainError):
    default_message = "This stage is not awaiting review"


class CannotCancel(DomainError):
    default_message = "This leave request can no longer be cancelled"


# ── Authorization ───────────────────────────────────────────────────
class NotAuthorized(DomainError):
    kind = ErrorKind.AUTHORIZATION
    default_message = "You are not authorized to perform this action"


class RoleNotEligible(DomainError):
    kind = ErrorKind.AUTHORIZATION
    default_message = "Your role is not subject to time tracking"


class PrerequisiteNotMet(DomainError):
    kind = ErrorKind.AUTHORIZATION
    default_message = "The request must first be approved by the manager"


# ── Not found / conflict ────────────────────────────────────────────
class ResourceNotFound(DomainError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class ConcurrentModification(DomainError):
    kind = ErrorKind.CONFLICT
    default_message = "The record was modified concurrently, retry the operation"

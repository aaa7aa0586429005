"""
Shared plumbing for the service layer.

Every public service operation runs as one unit of work on the injected
``AsyncSession`` and returns a :class:`Result`: domain transitions raise
internally, :func:`returns_result` rolls the session back and hands the
error to the caller as a value.
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from workforce.core.config import parse_hhmm, parse_offset, settings
from workforce.domain.attendance import WorkingHours
from workforce.domain.errors import ConcurrentModification, DomainError
from workforce.domain.result import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current wall-clock time in the organisation's timezone, as a naive datetime."""
    return datetime.now(parse_offset(settings.TIMEZONE_OFFSET)).replace(tzinfo=None)


def working_hours_from_settings() -> WorkingHours:
    return WorkingHours(
        standard_start=parse_hhmm(settings.WORK_START),
        standard_end=parse_hhmm(settings.WORK_END),
        standard_daily_hours=Decimal(settings.STANDARD_DAILY_HOURS),
        overtime_review_threshold=Decimal(settings.OVERTIME_REVIEW_THRESHOLD_HOURS),
    )


class Service:
    def __init__(self, db: AsyncSession, *, clock: Clock = local_now) -> None:
        self.db = db
        self.clock = clock


def returns_result(
    operation: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[Result[T]]]:
    """Turn a raising service coroutine into one that returns a :class:`Result`."""

    @functools.wraps(operation)
    async def wrapper(self: Service, *args: Any, **kwargs: Any) -> Result[T]:
        try:
            value = await operation(self, *args, **kwargs)
        except StaleDataError:
            await self.db.rollback()
            logger.warning("%s lost a concurrent update race", operation.__qualname__)
            return Result.failure(ConcurrentModification())
        except DomainError as exc:
            await self.db.rollback()
            logger.info("%s rejected: %s (%s)", operation.__qualname__, exc.code, exc.message)
            return Result.failure(exc)
        return Result.success(value)

    return wrapper

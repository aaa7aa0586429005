"""
LeaveWorkflow: submission, staged review, cancellation and balances.

Stage transitions read the request under a row lock and write it back
through the ``version`` column, so two reviewers racing on the same
stage cannot both succeed: the loser gets :class:`ConcurrentModification`.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from workforce.core.config import settings
from workforce.domain.errors import NotAuthorized, ResourceNotFound
from workforce.domain.leave import (BALANCE_CHECKED_TYPES,
                                    OVERLAP_BLOCKING_STATUSES, ApprovalStatus,
                                    LeaveBalance, LeaveDraft, LeaveRequest,
                                    Stage, StageReview, build_balance, cancel,
                                    review, submit)
from workforce.domain.roles import Caller, Capability
from workforce.repositories.leave import LeaveRequestRepository
from workforce.repositories.users import OrgDirectory, UserRepository
from workforce.services.base import Clock, Service, local_now, returns_result

logger = logging.getLogger(__name__)

_STAGE_QUEUE_CAPABILITY = {
    Stage.MANAGER: Capability.APPROVE_LEAVES,
    Stage.HR: Capability.REVIEW_HR_STAGE,
    Stage.DIRECTOR: Capability.REVIEW_DIRECTOR_STAGE,
}


class LeaveWorkflow(Service):
    def __init__(self, db: AsyncSession, *, clock: Clock = local_now) -> None:
        super().__init__(db, clock=clock)
        self._requests = LeaveRequestRepository(db)
        self._users = UserRepository(db)
        self._org = OrgDirectory(db)

    async def _require_view(self, caller: Caller, user_id: int) -> None:
        if user_id == caller.user_id:
            return
        manager_id = await self._org.manager_of(user_id)
        if not caller.can_view(user_id, manager_id):
            raise NotAuthorized("You cannot view another user's leave requests")

    async def _require_request(self, request_id: int, *, lock: bool = False) -> LeaveRequest:
        request = await self._requests.find_by_id(request_id, lock=lock)
        if request is None:
            raise ResourceNotFound(f"Leave request {request_id} not found")
        return request

    async def _balance(self, user_id: int, year: int) -> LeaveBalance:
        entitlement = await self._org.entitlement_for(user_id)
        taken = await self._requests.sum_approved_days_by_type_and_year(user_id, year)
        return build_balance(user_id, year, entitlement, taken)

    # ── Commands ────────────────────────────────────────────────────
    @returns_result
    async def submit(self, caller: Caller, draft: LeaveDraft) -> LeaveRequest:
        if draft.user_id != caller.user_id:
            raise NotAuthorized("Leave can only be requested for yourself")

        user = await self._users.require(caller.user_id)
        existing = await self._requests.find_overlapping(
            user.id, draft.start_date, draft.end_date, OVERLAP_BLOCKING_STATUSES
        )
        balance = None
        if draft.leave_type in BALANCE_CHECKED_TYPES:
            balance = await self._balance(user.id, draft.start_date.year)

        request = submit(
            replace(draft, employee_code=user.employee_code),
            now=self.clock(),
            has_manager=user.manager_id is not None,
            existing=existing,
            balance=balance,
            min_notice_days=settings.MIN_LEAVE_NOTICE_DAYS,
        )
        saved = await self._requests.add(request)
        await self.db.commit()
        logger.info(
            "Leave request %d submitted by user %d: %s, %s day(s), status %s",
            saved.id,
            caller.user_id,
            saved.leave_type.value,
            saved.total_days,
            saved.status.value,
        )
        return saved

    @returns_result
    async def review(
        self,
        caller: Caller,
        request_id: int,
        stage: Stage,
        decision: ApprovalStatus,
        *,
        comments: Optional[str] = None,
        escalate_to_director: bool = False,
    ) -> LeaveRequest:
        request = await self._require_request(request_id, lock=True)
        owner_manager_id = await self._org.manager_of(request.user_id)
        updated = review(
            request,
            StageReview(
                stage=stage,
                reviewer=caller,
                decision=decision,
                at=self.clock(),
                comments=comments,
                escalate_to_director=escalate_to_director,
            ),
            owner_manager_id=owner_manager_id,
        )
        saved = await self._requests.save(updated)
        await self.db.commit()
        logger.info(
            "Leave request %d: %s stage %s by user %d, status now %s",
            request_id,
            stage.value,
            decision.value,
            caller.user_id,
            saved.status.value,
        )
        return saved

    @returns_result
    async def cancel(self, caller: Caller, request_id: int, reason: Optional[str] = None) -> LeaveRequest:
        request = await self._require_request(request_id, lock=True)
        saved = await self._requests.save(cancel(request, caller=caller, reason=reason, now=self.clock()))
        await self.db.commit()
        logger.info("Leave request %d cancelled by user %d", request_id, caller.user_id)
        return saved

    # ── Queries ─────────────────────────────────────────────────────
    @returns_result
    async def balance(self, caller: Caller, user_id: int, year: Optional[int] = None) -> LeaveBalance:
        await self._require_view(caller, user_id)
        return await self._balance(user_id, year or self.clock().year)

    @returns_result
    async def get(self, caller: Caller, request_id: int) -> LeaveRequest:
        request = await self._require_request(request_id)
        await self._require_view(caller, request.user_id)
        return request

    @returns_result
    async def list_for_user(self, caller: Caller, user_id: int) -> list[LeaveRequest]:
        await self._require_view(caller, user_id)
        return await self._requests.find_by_user(user_id)

    @returns_result
    async def pending_for_stage(self, caller: Caller, stage: Stage) -> list[LeaveRequest]:
        if not caller.can(_STAGE_QUEUE_CAPABILITY[stage]):
            raise NotAuthorized(f"You cannot review the {stage.value} stage")
        manager_id = None
        if stage == Stage.MANAGER and not caller.can_manage_employees():
            manager_id = caller.user_id
        return await self._requests.find_pending_for_stage(stage, manager_id=manager_id)

"""Task Service: core business logic for the task/bid/result lifecycle.

Coordinates between:
    - Domain state machine (transition guard)
    - Repositories (data access)
    - Event log (audit trail)
    - Redis (one-time claims on on-chain transaction ids)

REST routes and MCP tools both call into this service, so every business
rule lives here once. Escrow transactions themselves are built and signed in
the poster's wallet; this service only records their ids.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from ibwt_marketplace.config import get_settings
from ibwt_marketplace.domain.enums import BidStatus, EventType, TaskStatus, normalize_status
from ibwt_marketplace.domain.exceptions import (
    AgentNotFoundError,
    BidNotFoundError,
    DuplicateOperationError,
    ForbiddenError,
    InvalidStateTransitionError,
    InvalidStatusError,
    TaskNotFoundError,
    ValidationError,
)
from ibwt_marketplace.domain.state_machine import TaskStateMachine
from ibwt_marketplace.infrastructure.database.orm_models import Bid, Result, Task
from ibwt_marketplace.infrastructure.database.repositories import (
    AgentRepository,
    BidRepository,
    EventRepository,
    ResultRepository,
    TaskRepository,
)
from ibwt_marketplace.infrastructure.redis_client import claim_idempotency
from ibwt_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

    from ibwt_marketplace.infrastructure.database.orm_models import TaskEvent

logger = get_logger(__name__)


class TaskService:
    """Manages the task lifecycle from posting to settlement."""

    def __init__(self, session: AsyncSession, redis: aioredis.Redis | None = None) -> None:
        self._session = session
        self._redis = redis
        self._task_repo = TaskRepository(session)
        self._bid_repo = BidRepository(session)
        self._result_repo = ResultRepository(session)
        self._event_repo = EventRepository(session)
        self._agent_repo = AgentRepository(session)

    # ------------------------------------------------------------------
    # Task Creation
    # ------------------------------------------------------------------

    async def create_task(
        self,
        request: str,
        budget_ibwt: int,
        user_address: str,
        requirements: dict | None = None,
    ) -> Task:
        """Post a new task in the open state."""
        if not request or not request.strip():
            raise ValidationError("Task request is required")
        if budget_ibwt <= 0:
            raise ValidationError("Budget must be positive")
        if not user_address:
            raise ValidationError("User address is required")

        task = Task(
            request=request.strip(),
            budget_ibwt=budget_ibwt,
            user_address=user_address,
            requirements=requirements,
            status=TaskStatus.OPEN.value,
        )
        task = await self._task_repo.create(task)

        await self._event_repo.record(
            task_id=task.id,
            event_type=EventType.TASK_CREATED,
            old_status=None,
            new_status=TaskStatus.OPEN,
            actor=user_address,
            metadata={"budget_ibwt": budget_ibwt},
        )

        logger.info("task.created", task_id=task.id, budget=budget_ibwt)
        return await self._get_task_or_raise(task.id)

    # ------------------------------------------------------------------
    # Bids
    # ------------------------------------------------------------------

    async def create_bid(
        self,
        task_id: str,
        agent_id: str,
        agent_fee: int,
        total: int,
        mcp_plan: list[dict] | None = None,
        eta_minutes: int | None = None,
        message: str | None = None,
    ) -> Bid:
        """Record a registered agent's bid on an open task.

        The payout wallet is taken from the agent's registration.
        """
        task = await self._get_task_or_raise(task_id)
        if self._current_status(task) != TaskStatus.OPEN:
            raise InvalidStateTransitionError(task.status, "bid on")
        if total <= 0 or agent_fee < 0:
            raise ValidationError("Bid amounts must be positive")
        agent = await self._agent_repo.get_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)

        bid = await self._bid_repo.create(
            Bid(
                task_id=task.id,
                agent=agent,
                agent_address=agent.wallet_address,
                agent_fee=agent_fee,
                total=total,
                mcp_plan=mcp_plan or [],
                eta_minutes=eta_minutes,
                message=message,
                status=BidStatus.PENDING.value,
            )
        )
        logger.info("task.bid_created", task_id=task_id, bid_id=bid.id, agent_id=agent_id)
        return bid

    async def list_bids(self, task_id: str) -> list[Bid]:
        return await self._bid_repo.get_by_task(task_id)

    async def accept_bid(
        self,
        task_id: str,
        bid_id: str,
        escrow_tx_id: str,
        lock_tx_id: str | None = None,
    ) -> Task:
        """Accept a bid after the poster's lock_funds transaction. open -> working."""
        task = await self._get_task_or_raise(task_id)

        bid = await self._bid_repo.get_by_id(bid_id)
        if bid is None or bid.task_id != task.id:
            raise BidNotFoundError(bid_id)

        old_status = self._fire_transition(task, "accept_bid")
        await self._claim_transaction(escrow_tx_id, task.id)

        settings = get_settings()
        task.accepted_bid_id = bid.id
        task.escrow_tx_id = escrow_tx_id
        task.lock_tx_id = lock_tx_id
        task.review_deadline = datetime.now(UTC) + timedelta(hours=settings.review_window_hours)
        await self._task_repo.update_status(task, TaskStatus.WORKING)

        bid.status = BidStatus.ACCEPTED.value
        await self._session.flush()
        await self._bid_repo.set_status_for_task(
            task.id, BidStatus.REJECTED, exclude_bid_id=bid.id
        )

        await self._event_repo.record(
            task_id=task.id,
            event_type=EventType.BID_ACCEPTED,
            old_status=old_status,
            new_status=TaskStatus.WORKING,
            actor=task.user_address,
            metadata={"bid_id": bid.id, "escrow_tx_id": escrow_tx_id, "lock_tx_id": lock_tx_id},
        )

        logger.info("task.bid_accepted", task_id=task.id, bid_id=bid.id, escrow_tx_id=escrow_tx_id)
        return await self._get_task_or_raise(task.id)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    async def submit_result(
        self,
        task_id: str,
        agent_id: str,
        outputs: list[dict],
        mcp_calls_log: list[dict] | None = None,
    ) -> Task:
        """Record deliverables from the accepted agent. working -> review."""
        if not agent_id or not outputs:
            raise ValidationError("Missing required fields: agentId, outputs")

        task = await self._get_task_or_raise(task_id)
        sm = self._machine_for(task)
        if "submit_result" not in sm.get_allowed_events():
            raise InvalidStateTransitionError(task.status, "submit_result")

        accepted = None
        if task.accepted_bid_id:
            accepted = await self._bid_repo.get_by_id(task.accepted_bid_id)
        if accepted is None or accepted.agent_id != agent_id:
            raise ForbiddenError("Agent does not match accepted bid")

        old_status = self._fire_transition(task, "submit_result")

        existing = await self._result_repo.get_by_task(task.id)
        if existing is None:
            await self._result_repo.create(
                Result(
                    task_id=task.id,
                    agent_id=agent_id,
                    outputs=outputs,
                    mcp_calls_log=mcp_calls_log,
                )
            )
            revision = 0
        else:
            existing.outputs = outputs
            existing.mcp_calls_log = mcp_calls_log
            existing.revision_count += 1
            revision = existing.revision_count

        await self._task_repo.update_status(task, TaskStatus.REVIEW)

        await self._event_repo.record(
            task_id=task.id,
            event_type=EventType.RESULT_SUBMITTED,
            old_status=old_status,
            new_status=TaskStatus.REVIEW,
            actor=agent_id,
            metadata={"outputs": len(outputs), "revision": revision},
        )

        logger.info("task.result_submitted", task_id=task.id, agent_id=agent_id, revision=revision)
        return await self._get_task_or_raise(task.id)

    # ------------------------------------------------------------------
    # Review outcome
    # ------------------------------------------------------------------

    async def approve(self, task_id: str, approve_tx_id: str) -> Task:
        """Poster approves the result; escrow pays the agent. review -> done."""
        return await self._settle_review(
            task_id,
            event_name="approve",
            tx_id=approve_tx_id,
            tx_field="approve_tx_id",
            new_status=TaskStatus.DONE,
            event_type=EventType.RESULT_APPROVED,
        )

    async def decline(self, task_id: str, decline_tx_id: str, reason: str | None = None) -> Task:
        """Poster declines the result; escrow refunds the poster. review -> cancelled."""
        return await self._settle_review(
            task_id,
            event_name="decline",
            tx_id=decline_tx_id,
            tx_field="decline_tx_id",
            new_status=TaskStatus.CANCELLED,
            event_type=EventType.RESULT_DECLINED,
            reason=reason,
        )

    async def _settle_review(
        self,
        task_id: str,
        event_name: str,
        tx_id: str,
        tx_field: str,
        new_status: TaskStatus,
        event_type: EventType,
        reason: str | None = None,
    ) -> Task:
        task = await self._get_task_or_raise(task_id)
        sm = self._machine_for(task)
        if event_name not in sm.get_allowed_events():
            raise InvalidStateTransitionError(task.status, event_name)
        if task.result is None:
            raise ValidationError("No result submitted yet")

        old_status = self._fire_transition(task, event_name)
        await self._claim_transaction(tx_id, task.id)

        setattr(task, tx_field, tx_id)
        await self._task_repo.update_status(task, new_status)

        metadata: dict = {tx_field: tx_id}
        if reason:
            metadata["reason"] = reason
        await self._event_repo.record(
            task_id=task.id,
            event_type=event_type,
            old_status=old_status,
            new_status=new_status,
            actor=task.user_address,
            metadata=metadata,
        )

        logger.info(f"task.{event_name}d", task_id=task.id, tx_id=tx_id)
        return await self._get_task_or_raise(task.id)

    # ------------------------------------------------------------------
    # Cancellation & disputes
    # ------------------------------------------------------------------

    async def cancel(self, task_id: str, cancelled_by: str | None = None) -> Task:
        """Withdraw an open task before any bid is accepted."""
        task = await self._get_task_or_raise(task_id)
        old_status = self._fire_transition(task, "cancel")
        await self._task_repo.update_status(task, TaskStatus.CANCELLED)
        await self._bid_repo.set_status_for_task(task.id, BidStatus.REJECTED)

        await self._event_repo.record(
            task_id=task.id,
            event_type=EventType.TASK_CANCELLED,
            old_status=old_status,
            new_status=TaskStatus.CANCELLED,
            actor=cancelled_by or task.user_address,
        )
        logger.info("task.cancelled", task_id=task.id)
        return await self._get_task_or_raise(task.id)

    async def raise_dispute(self, task_id: str, reason: str, raised_by: str) -> Task:
        """Freeze a working or in-review task pending manual resolution."""
        task = await self._get_task_or_raise(task_id)
        old_status = self._fire_transition(task, "raise_dispute")
        await self._task_repo.update_status(task, TaskStatus.DISPUTED)

        await self._event_repo.record(
            task_id=task.id,
            event_type=EventType.DISPUTE_RAISED,
            old_status=old_status,
            new_status=TaskStatus.DISPUTED,
            actor=raised_by,
            metadata={"reason": reason},
        )
        logger.info("task.dispute_raised", task_id=task.id, by=raised_by)
        return await self._get_task_or_raise(task.id)

    async def resolve_dispute(
        self,
        task_id: str,
        in_favor_of_agent: bool,
        resolved_by: str = "SYSTEM",
    ) -> Task:
        """Close a dispute: done if the agent wins, cancelled if the poster does."""
        task = await self._get_task_or_raise(task_id)
        if in_favor_of_agent:
            event_name, new_status = "resolve_for_agent", TaskStatus.DONE
            event_type = EventType.DISPUTE_RESOLVED_AGENT
        else:
            event_name, new_status = "resolve_for_poster", TaskStatus.CANCELLED
            event_type = EventType.DISPUTE_RESOLVED_POSTER

        old_status = self._fire_transition(task, event_name)
        await self._task_repo.update_status(task, new_status)

        await self._event_repo.record(
            task_id=task.id,
            event_type=event_type,
            old_status=old_status,
            new_status=new_status,
            actor=resolved_by,
        )
        logger.info("task.dispute_resolved", task_id=task.id, in_favor_of_agent=in_favor_of_agent)
        return await self._get_task_or_raise(task.id)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_task(self, task_id: str) -> Task:
        return await self._get_task_or_raise(task_id)

    async def list_tasks(self, status: str | None = None) -> list[tuple[Task, int]]:
        """List tasks with bid counts. Legacy status names are accepted as filters."""
        status_filter = None
        if status:
            try:
                status_filter = normalize_status(status)
            except ValueError as err:
                raise ValidationError(str(err)) from err
        return await self._task_repo.list_with_bid_counts(status_filter)

    async def get_status(self, task_id: str) -> dict:
        """Task status with the lifecycle events that may fire next.

        Rows still holding a legacy status report the canonical one.
        """
        task = await self._get_task_or_raise(task_id)
        return {
            "task_id": task.id,
            "status": self._current_status(task).value,
            "accepted_bid_id": task.accepted_bid_id,
            "has_result": task.result is not None,
            "allowed_events": self._machine_for(task).get_allowed_events(),
        }

    async def get_events(self, task_id: str) -> list[TaskEvent]:
        await self._get_task_or_raise(task_id)
        return await self._event_repo.get_by_task(task_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_task_or_raise(self, task_id: str) -> Task:
        task = await self._task_repo.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    @staticmethod
    def _current_status(task: Task) -> TaskStatus:
        """Canonical status of a task; rows not yet migrated read as their new value."""
        try:
            return normalize_status(task.status)
        except ValueError as err:
            raise InvalidStatusError(task.status) from err

    def _machine_for(self, task: Task) -> TaskStateMachine:
        return TaskStateMachine(current_status=self._current_status(task).value)

    def _fire_transition(self, task: Task, event_name: str) -> TaskStatus:
        """Validate and fire a state machine transition; return the old status.

        Raises InvalidStateTransitionError if the transition is illegal.
        """
        from statemachine.exceptions import TransitionNotAllowed

        old_status = self._current_status(task)
        sm = self._machine_for(task)
        event_method = getattr(sm, event_name, None)
        if event_method is None:
            raise InvalidStateTransitionError(task.status, event_name)
        try:
            event_method()
        except TransitionNotAllowed as err:
            raise InvalidStateTransitionError(task.status, event_name) from err
        return old_status

    async def _claim_transaction(self, tx_id: str, task_id: str) -> None:
        """Reject a transaction id that was already recorded against any task."""
        if not tx_id:
            raise ValidationError("Transaction id is required")
        if self._redis is None:
            logger.warning("task.tx_claim_skipped", reason="redis unavailable", tx_id=tx_id)
            return
        if not await claim_idempotency(self._redis, f"tx:{tx_id}", owner=task_id):
            raise DuplicateOperationError(tx_id)

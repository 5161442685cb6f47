"""Maintenance Service: operator-only data fixes.

These operations deliberately bypass the lifecycle state machine and write no
audit events. They run inside the caller's session, so a single commit (or
rollback) covers everything an operation touches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ibwt_marketplace.domain.enums import STATUS_MIGRATION_MAP, BidStatus, TaskStatus
from ibwt_marketplace.domain.exceptions import TaskNotFoundError
from ibwt_marketplace.infrastructure.database.repositories import (
    BidRepository,
    ResultRepository,
    TaskRepository,
)
from ibwt_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from ibwt_marketplace.infrastructure.database.orm_models import Task

logger = get_logger(__name__)


@dataclass
class MigrationReport:
    """Outcome of a status migration run."""

    # old value -> rows rewritten (zero when nothing matched)
    updated: dict[str, int] = field(default_factory=dict)
    distribution: dict[str, int] = field(default_factory=dict)
    unknown: dict[str, int] = field(default_factory=dict)

    @property
    def total_updated(self) -> int:
        return sum(self.updated.values())


@dataclass
class ResetReport:
    task_id: str
    previous_status: str
    new_status: str
    results_deleted: int
    bids_reset: int = 0


class MaintenanceService:
    """Status migration and per-task administrative overrides."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._task_repo = TaskRepository(session)
        self._bid_repo = BidRepository(session)
        self._result_repo = ResultRepository(session)

    async def migrate_statuses(self) -> MigrationReport:
        """Rewrite every legacy task status to its canonical value.

        Every mapping is applied, including identity mappings, which match
        nothing that needs changing. Values outside the mapping are reported
        and left as they are.
        """
        report = MigrationReport()
        for old_status, new_status in STATUS_MIGRATION_MAP.items():
            if old_status == new_status.value:
                report.updated[old_status] = 0
                continue
            count = await self._task_repo.rename_status(old_status, new_status)
            report.updated[old_status] = count
            if count:
                logger.info(
                    "maintenance.status_migrated",
                    old_status=old_status,
                    new_status=new_status.value,
                    tasks=count,
                )

        report.distribution = await self._task_repo.status_distribution()
        report.unknown = {
            status: count
            for status, count in report.distribution.items()
            if status not in STATUS_MIGRATION_MAP
        }
        if report.unknown:
            logger.warning("maintenance.unknown_statuses", statuses=report.unknown)

        logger.info(
            "maintenance.migration_complete",
            total_updated=report.total_updated,
            distribution=report.distribution,
        )
        return report

    async def reset_to_working(self, task_id: str) -> ResetReport:
        """Force a task back to working and discard its submitted results."""
        task = await self._get_task_or_raise(task_id)
        previous = task.status

        await self._task_repo.update_status(task, TaskStatus.WORKING)
        deleted = await self._result_repo.delete_by_task(task.id)
        self._session.expire(task, ["result"])

        logger.info(
            "maintenance.task_reset",
            task_id=task.id,
            previous_status=previous,
            results_deleted=deleted,
        )
        return ResetReport(
            task_id=task.id,
            previous_status=previous,
            new_status=TaskStatus.WORKING.value,
            results_deleted=deleted,
        )

    async def reopen_task(self, task_id: str) -> ResetReport:
        """Put a task back on the board so a bid can be accepted again.

        Clears the accepted bid, every transaction id and the review deadline,
        returns all bids to pending and discards results.
        """
        task = await self._get_task_or_raise(task_id)
        previous = task.status

        task.accepted_bid_id = None
        task.escrow_tx_id = None
        task.lock_tx_id = None
        task.approve_tx_id = None
        task.decline_tx_id = None
        task.review_deadline = None
        await self._task_repo.update_status(task, TaskStatus.OPEN)

        bids_reset = await self._bid_repo.set_status_for_task(task.id, BidStatus.PENDING)
        deleted = await self._result_repo.delete_by_task(task.id)
        self._session.expire(task, ["result"])

        logger.info(
            "maintenance.task_reopened",
            task_id=task.id,
            previous_status=previous,
            bids_reset=bids_reset,
            results_deleted=deleted,
        )
        return ResetReport(
            task_id=task.id,
            previous_status=previous,
            new_status=TaskStatus.OPEN.value,
            results_deleted=deleted,
            bids_reset=bids_reset,
        )

    async def inspect_task(self, task_id: str) -> dict:
        """Raw lifecycle fields of a task, for debugging escrow state."""
        task = await self._get_task_or_raise(task_id)
        return {
            "id": task.id,
            "status": task.status,
            "escrow_tx_id": task.escrow_tx_id,
            "lock_tx_id": task.lock_tx_id,
            "approve_tx_id": task.approve_tx_id,
            "decline_tx_id": task.decline_tx_id,
            "accepted_bid_id": task.accepted_bid_id,
            "bids": len(task.bids),
            "results": await self._result_repo.count_by_task(task.id),
        }

    async def delete_task(self, task_id: str) -> dict:
        """Permanently delete a task with its bids, result and events."""
        task = await self._get_task_or_raise(task_id)
        summary = {
            "id": task.id,
            "status": task.status,
            "bids": len(task.bids),
            "has_result": task.result is not None,
            "events": len(task.events),
        }
        await self._task_repo.delete(task)
        logger.info("maintenance.task_deleted", **summary)
        return summary

    async def _get_task_or_raise(self, task_id: str) -> Task:
        task = await self._task_repo.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

"""Overview Service: the dashboard home page numbers and activity feed.

Given a wallet, "spent" is what settled on tasks the wallet posted and
"earned" is what settled on bids by agents the wallet registered. Without a
wallet both are marketplace totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from ibwt_marketplace.domain.enums import TaskStatus
from ibwt_marketplace.infrastructure.database.repositories import (
    BidRepository,
    McpServerRepository,
    TaskRepository,
)
from ibwt_marketplace.logging_config import get_logger
from ibwt_marketplace.services.mcp_registry_service import iter_plan_usage

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from ibwt_marketplace.infrastructure.database.orm_models import Task

logger = get_logger(__name__)

PERIODS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_PERIOD = "24h"
ACTIVITY_LIMIT = 10


@dataclass(frozen=True)
class Activity:
    kind: str
    title: str
    amount: float
    date: datetime
    href: str


@dataclass(frozen=True)
class Overview:
    period: str
    active_tasks: int
    completed_tasks: int
    total_spent: int
    total_earned: int
    activities: list[Activity]


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored instant is UTC.
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _spent_on(task: Task) -> int:
    accepted = next((b for b in task.bids if b.id == task.accepted_bid_id), None)
    return accepted.total if accepted is not None else task.budget_ibwt


class OverviewService:
    """Aggregates tasks, settled bids and MCP usage for one period."""

    def __init__(self, session: AsyncSession) -> None:
        self._task_repo = TaskRepository(session)
        self._bid_repo = BidRepository(session)
        self._server_repo = McpServerRepository(session)

    async def overview(
        self,
        period: str | None = DEFAULT_PERIOD,
        wallet: str | None = None,
        now: datetime | None = None,
    ) -> Overview:
        """Stats and the ten most recent activities for ``period``.

        Unknown periods fall back to 24h.
        """
        if period not in PERIODS:
            period = DEFAULT_PERIOD
        since = (now or datetime.now(UTC)) - PERIODS[period]

        active = await self._task_repo.count_by_status([TaskStatus.OPEN, TaskStatus.WORKING])
        completed = await self._task_repo.count_by_status([TaskStatus.DONE], since=since)
        spent_bids = await self._bid_repo.list_settled(since=since, user_address=wallet)
        earned_bids = await self._bid_repo.list_settled(since=since, owner_address=wallet)

        activities = await self._task_activities(since, wallet)
        activities += [
            Activity(
                kind="agent",
                title=f"{bid.agent.name} earned from: {task.request}",
                amount=bid.total,
                date=_utc(task.updated_at),
                href="/dashboard/agents",
            )
            for bid, task in earned_bids[:ACTIVITY_LIMIT]
        ]
        activities += await self._mcp_activities(since, wallet)
        activities.sort(key=lambda a: a.date, reverse=True)

        logger.debug("overview.built", period=period, wallet=wallet, activities=len(activities))
        return Overview(
            period=period,
            active_tasks=active,
            completed_tasks=completed,
            total_spent=sum(bid.total for bid, _task in spent_bids),
            total_earned=sum(bid.total for bid, _task in earned_bids),
            activities=activities[:ACTIVITY_LIMIT],
        )

    async def _task_activities(self, since: datetime, wallet: str | None) -> list[Activity]:
        tasks = await self._task_repo.list_recent(since, ACTIVITY_LIMIT, user_address=wallet)
        return [
            Activity(
                kind="task",
                title=task.request,
                amount=-_spent_on(task),
                date=_utc(task.created_at),
                href=f"/dashboard/tasks/{task.id}",
            )
            for task in tasks
        ]

    async def _mcp_activities(self, since: datetime, wallet: str | None) -> list[Activity]:
        server_ids = None
        if wallet is not None:
            server_ids = {s.id for s in await self._server_repo.list_by_provider(wallet)}
            if not server_ids:
                return []

        activities = []
        for bid, task in await self._bid_repo.list_settled(since=since):
            for usage in iter_plan_usage(bid.mcp_plan):
                if server_ids is not None and usage.mcp_id not in server_ids:
                    continue
                activities.append(
                    Activity(
                        kind="mcp",
                        title=f"{usage.mcp_name} used ({usage.calls} calls)",
                        amount=usage.subtotal,
                        date=_utc(task.updated_at),
                        href="/dashboard/mcps",
                    )
                )
        return activities

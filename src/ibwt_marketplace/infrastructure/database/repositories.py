"""Repository classes for database access.

Repositories encapsulate all SQL queries and give the service layer a small
interface. They accept an AsyncSession and never manage their own
transactions; committing is the caller's responsibility.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, or_, select, update

from ibwt_marketplace.domain.enums import McpStatus, TaskStatus
from ibwt_marketplace.infrastructure.database.orm_models import (
    Agent,
    Bid,
    ContactMessage,
    McpServer,
    Result,
    Task,
    TaskEvent,
    WaitlistEntry,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from ibwt_marketplace.domain.enums import BidStatus, EventType


class TaskRepository:
    """Data access for tasks."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, task: Task) -> Task:
        """Insert a new task."""
        self._session.add(task)
        await self._session.flush()
        return task

    async def get_by_id(self, task_id: str) -> Task | None:
        """Fetch a task (with bids, result and events) by id."""
        result = await self._session.execute(
            select(Task)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_with_bid_counts(
        self, status: TaskStatus | None = None
    ) -> list[tuple[Task, int]]:
        """Fetch tasks newest first, each paired with its number of bids."""
        bid_counts = (
            select(Bid.task_id, func.count(Bid.id).label("bids_count"))
            .group_by(Bid.task_id)
            .subquery()
        )
        stmt = (
            select(Task, func.coalesce(bid_counts.c.bids_count, 0))
            .outerjoin(bid_counts, bid_counts.c.task_id == Task.id)
            .order_by(Task.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(Task.status == status.value)
        result = await self._session.execute(stmt)
        return [(task, int(count)) for task, count in result.all()]

    async def update_status(self, task: Task, new_status: TaskStatus) -> Task:
        """Set the status of a task (call AFTER state machine validation)."""
        task.status = new_status.value
        task.updated_at = datetime.now(UTC)
        await self._session.flush()
        return task

    async def rename_status(self, old_status: str, new_status: TaskStatus) -> int:
        """Bulk-rewrite every task holding ``old_status``. Returns rows affected."""
        result = await self._session.execute(
            update(Task)
            .where(Task.status == old_status)
            .values(status=new_status.value, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def status_distribution(self) -> dict[str, int]:
        """Count tasks per stored status value."""
        result = await self._session.execute(
            select(Task.status, func.count(Task.id)).group_by(Task.status).order_by(Task.status)
        )
        return {status: int(count) for status, count in result.all()}

    async def count_by_status(
        self, statuses: Iterable[TaskStatus], since: datetime | None = None
    ) -> int:
        """Count tasks in any of ``statuses``, optionally created on or after ``since``."""
        stmt = select(func.count(Task.id)).where(Task.status.in_([s.value for s in statuses]))
        if since is not None:
            stmt = stmt.where(Task.created_at >= since)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def list_recent(
        self, since: datetime, limit: int, user_address: str | None = None
    ) -> list[Task]:
        """Tasks created on or after ``since``, newest first."""
        stmt = select(Task).where(Task.created_at >= since)
        if user_address is not None:
            stmt = stmt.where(Task.user_address == user_address)
        result = await self._session.execute(stmt.order_by(Task.created_at.desc()).limit(limit))
        return list(result.scalars().all())

    async def delete(self, task: Task) -> None:
        """Delete a task; bids, result and events go with it."""
        task.accepted_bid_id = None
        await self._session.flush()
        await self._session.delete(task)
        await self._session.flush()


class BidRepository:
    """Data access for bids."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, bid: Bid) -> Bid:
        """Insert a new bid."""
        self._session.add(bid)
        await self._session.flush()
        return bid

    async def get_by_id(self, bid_id: str) -> Bid | None:
        result = await self._session.execute(select(Bid).where(Bid.id == bid_id))
        return result.scalar_one_or_none()

    async def get_by_task(self, task_id: str) -> list[Bid]:
        """Fetch all bids for a task, newest first."""
        result = await self._session.execute(
            select(Bid).where(Bid.task_id == task_id).order_by(Bid.created_at.desc())
        )
        return list(result.scalars().all())

    async def set_status_for_task(
        self,
        task_id: str,
        status: BidStatus,
        exclude_bid_id: str | None = None,
    ) -> int:
        """Bulk-set the status of a task's bids, optionally skipping one."""
        stmt = update(Bid).where(Bid.task_id == task_id)
        if exclude_bid_id is not None:
            stmt = stmt.where(Bid.id != exclude_bid_id)
        result = await self._session.execute(
            stmt.values(status=status.value).execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0


    async def list_settled(
        self,
        since: datetime | None = None,
        user_address: str | None = None,
        owner_address: str | None = None,
        limit: int | None = None,
    ) -> list[tuple[Bid, Task]]:
        """Accepted bids whose task is done, newest first, each with its task.

        Args:
            since: Only bids created on or after this instant.
            user_address: Only tasks posted by this wallet.
            owner_address: Only bids by agents registered to this wallet.
            limit: Maximum number of rows.
        """
        stmt = (
            select(Bid, Task)
            .join(Task, Task.accepted_bid_id == Bid.id)
            .where(Task.status == TaskStatus.DONE.value)
        )
        if since is not None:
            stmt = stmt.where(Bid.created_at >= since)
        if user_address is not None:
            stmt = stmt.where(Task.user_address == user_address)
        if owner_address is not None:
            stmt = stmt.join(Agent, Agent.id == Bid.agent_id).where(
                Agent.owner_address == owner_address
            )
        stmt = stmt.order_by(Bid.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [(bid, task) for bid, task in result.all()]


class ResultRepository:
    """Data access for task results."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_task(self, task_id: str) -> Result | None:
        result = await self._session.execute(select(Result).where(Result.task_id == task_id))
        return result.scalar_one_or_none()

    async def create(self, result_row: Result) -> Result:
        self._session.add(result_row)
        await self._session.flush()
        return result_row

    async def count_by_task(self, task_id: str) -> int:
        result = await self._session.execute(
            select(func.count(Result.id)).where(Result.task_id == task_id)
        )
        return int(result.scalar_one())

    async def delete_by_task(self, task_id: str) -> int:
        """Delete every result owned by a task. Returns rows deleted."""
        result = await self._session.execute(
            delete(Result)
            .where(Result.task_id == task_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0


class EventRepository:
    """Data access for the append-only task audit log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        task_id: str,
        event_type: EventType,
        old_status: TaskStatus | None,
        new_status: TaskStatus,
        actor: str = "SYSTEM",
        metadata: dict | None = None,
    ) -> TaskEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        evt = TaskEvent(
            task_id=task_id,
            event_type=event_type.value,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value,
            actor=actor,
            metadata_json=metadata,
        )
        self._session.add(evt)
        await self._session.flush()
        return evt

    async def get_by_task(self, task_id: str) -> list[TaskEvent]:
        """Fetch all events for a task in chronological order."""
        result = await self._session.execute(
            select(TaskEvent)
            .where(TaskEvent.task_id == task_id)
            .order_by(TaskEvent.created_at.asc())
        )
        return list(result.scalars().all())


class WaitlistRepository:
    """Data access for waitlist signups."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, email: str, role: str) -> None:
        """Insert a signup, or update the role if the email is already present."""
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            await self._upsert_portable(email, role)
            return

        now = datetime.now(UTC)
        table = WaitlistEntry.__table__
        stmt = insert(table).values(
            id=str(uuid.uuid4()),
            email=email,
            role=role,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.email],
            set_={"role": stmt.excluded.role, "updated_at": now},
        )
        await self._session.execute(stmt)

    async def _upsert_portable(self, email: str, role: str) -> None:
        entry = await self.get_by_email(email)
        if entry is None:
            self._session.add(WaitlistEntry(email=email, role=role))
        else:
            entry.role = role
        await self._session.flush()

    async def get_by_email(self, email: str) -> WaitlistEntry | None:
        result = await self._session.execute(
            select(WaitlistEntry)
            .where(WaitlistEntry.email == email)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def count(self) -> int:
        result = await self._session.execute(select(func.count(WaitlistEntry.id)))
        return int(result.scalar_one())


class ContactRepository:
    """Data access for contact form submissions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: ContactMessage) -> ContactMessage:
        self._session.add(message)
        await self._session.flush()
        return message


class AgentRepository:
    """Data access for registered agents."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, agent: Agent) -> Agent:
        self._session.add(agent)
        await self._session.flush()
        return agent

    async def get_by_id(self, agent_id: str) -> Agent | None:
        result = await self._session.execute(select(Agent).where(Agent.id == agent_id))
        return result.scalar_one_or_none()

    async def list_agents(self, owner_address: str | None = None) -> list[Agent]:
        """Agents newest first, optionally only those registered by one wallet."""
        stmt = select(Agent).order_by(Agent.created_at.desc())
        if owner_address is not None:
            stmt = stmt.where(Agent.owner_address == owner_address)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class McpServerRepository:
    """Data access for MCP servers and their tools."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, server: McpServer) -> McpServer:
        """Insert a server; its tools cascade with it."""
        self._session.add(server)
        await self._session.flush()
        return server

    async def get_by_id(self, server_id: str) -> McpServer | None:
        result = await self._session.execute(
            select(McpServer)
            .where(McpServer.id == server_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        search: str | None = None,
        pricing_model: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[McpServer], int]:
        """Page through active servers, most used first. Returns (page, total)."""
        conditions = [McpServer.status == McpStatus.ACTIVE.value]
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(McpServer.name.ilike(pattern), McpServer.description.ilike(pattern))
            )
        if pricing_model:
            conditions.append(McpServer.default_pricing_model == pricing_model)

        total = await self._session.scalar(select(func.count(McpServer.id)).where(*conditions))
        result = await self._session.execute(
            select(McpServer)
            .where(*conditions)
            .order_by(McpServer.total_calls.desc(), McpServer.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), int(total or 0)

    async def list_by_provider(self, provider_address: str) -> list[McpServer]:
        result = await self._session.execute(
            select(McpServer)
            .where(McpServer.provider_address == provider_address)
            .order_by(McpServer.created_at.desc())
        )
        return list(result.scalars().all())

"""Shared test fixtures for the IBWT marketplace test suite.

Provides:
    - In-memory SQLite database (aiosqlite) with the full schema
    - A fake Redis client supporting SET NX
    - Service and HTTP client fixtures wired to the test database
    - Factory fixtures for a registered agent, and for tasks and bids in each
      lifecycle state
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ibwt_marketplace.config import Settings
from ibwt_marketplace.infrastructure.database.orm_models import Base
from ibwt_marketplace.infrastructure.notifications import EmailNotifier
from ibwt_marketplace.services.agent_service import AgentService
from ibwt_marketplace.services.task_service import TaskService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator

    from ibwt_marketplace.infrastructure.database.orm_models import Agent, Bid, Task


class FakeRedis:
    """Just enough of redis.asyncio.Redis for idempotency claims."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def ping(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def scope(session_factory):
    """A session_scope replacement bound to the test database."""

    @asynccontextmanager
    async def _scope() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return _scope


# ---------------------------------------------------------------------------
# Collaborator Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def log_only_notifier() -> EmailNotifier:
    """Notifier without an API key: messages go to the log only."""
    return EmailNotifier(settings=Settings(resend_api_key="", notify_email=""))


@pytest.fixture
def task_service(session, fake_redis) -> TaskService:
    return TaskService(session, redis=fake_redis)


@pytest.fixture
def agent_service(session) -> AgentService:
    return AgentService(session)


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_task_data() -> dict:
    """Return a valid task creation data dict."""
    return {
        "request": "Summarize the last 20 SOL/USDC swaps on Raydium",
        "budget_ibwt": 500,
        "user_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
        "requirements": {"format": "markdown"},
    }


@pytest.fixture
def sample_agent_data() -> dict:
    return {
        "name": "Alpha Analyst",
        "wallet_address": "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM",
        "owner_address": "AgentOwner1111111111111111111111111111111111",
        "description": "DEX analytics",
        "capabilities": ["analysis", "defi"],
        "supported_mcps": ["mcp-1"],
    }


@pytest_asyncio.fixture
async def registered_agent(agent_service, sample_agent_data) -> Agent:
    return await agent_service.register_agent(**sample_agent_data)


@pytest.fixture
def sample_bid_data(registered_agent) -> dict:
    return {
        "agent_id": registered_agent.id,
        "agent_fee": 300,
        "total": 420,
        "mcp_plan": [
            {
                "mcp_id": "mcp-1",
                "mcp_name": "dex-data",
                "calls": 4,
                "price_per_call": 30,
                "subtotal": 120,
            }
        ],
        "eta_minutes": 15,
        "message": "On it.",
    }


@pytest_asyncio.fixture
async def open_task(task_service, sample_task_data) -> Task:
    return await task_service.create_task(**sample_task_data)


@pytest_asyncio.fixture
async def pending_bid(task_service, open_task, sample_bid_data) -> Bid:
    return await task_service.create_bid(task_id=open_task.id, **sample_bid_data)


@pytest_asyncio.fixture
async def working_task(task_service, open_task, pending_bid) -> Task:
    return await task_service.accept_bid(
        open_task.id, pending_bid.id, escrow_tx_id="escrow-tx-1", lock_tx_id="lock-tx-1"
    )


@pytest_asyncio.fixture
async def review_task(task_service, working_task, sample_bid_data) -> Task:
    return await task_service.submit_result(
        working_task.id,
        agent_id=sample_bid_data["agent_id"],
        outputs=[{"type": "text", "label": "Summary", "content": "20 swaps, net +3.2 SOL"}],
    )


@pytest.fixture
def settle_task(task_service, sample_task_data, registered_agent):
    """Run a task from posting to approval and return the done task."""

    async def _settle(
        mcp_plan: list[dict] | None = None,
        total: int = 420,
        agent_id: str | None = None,
        user_address: str | None = None,
    ) -> Task:
        agent_id = agent_id or registered_agent.id
        task = await task_service.create_task(
            **{**sample_task_data, "user_address": user_address or sample_task_data["user_address"]}
        )
        bid = await task_service.create_bid(
            task_id=task.id, agent_id=agent_id, agent_fee=100, total=total, mcp_plan=mcp_plan
        )
        await task_service.accept_bid(task.id, bid.id, escrow_tx_id=f"escrow-{task.id}")
        await task_service.submit_result(
            task.id, agent_id=agent_id, outputs=[{"type": "text", "content": "ok"}]
        )
        return await task_service.approve(task.id, approve_tx_id=f"approve-{task.id}")

    return _settle


# ---------------------------------------------------------------------------
# HTTP Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def app(session_factory, fake_redis, log_only_notifier):
    from ibwt_marketplace.api.deps import get_db_session, get_notifier, get_redis_client
    from ibwt_marketplace.main import create_app

    app = create_app()

    async def _db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _db_session
    app.dependency_overrides[get_redis_client] = lambda: fake_redis
    app.dependency_overrides[get_notifier] = lambda: log_only_notifier
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

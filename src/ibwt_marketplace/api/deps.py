"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
services, the optional Redis client, the notifier and configuration.

The session is function-scoped: it commits when the route handler returns
and before the response is sent, so a failed commit becomes an error
response instead of a success for data that was never stored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ibwt_marketplace.config import Settings, get_settings
from ibwt_marketplace.infrastructure.database.engine import get_async_session
from ibwt_marketplace.infrastructure.notifications import EmailNotifier
from ibwt_marketplace.infrastructure.redis_client import get_optional_redis
from ibwt_marketplace.services.agent_service import AgentService
from ibwt_marketplace.services.contact_service import ContactService
from ibwt_marketplace.services.mcp_registry_service import McpRegistryService
from ibwt_marketplace.services.overview_service import OverviewService
from ibwt_marketplace.services.task_service import TaskService
from ibwt_marketplace.services.waitlist_service import WaitlistService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


DbSession = Depends(get_db_session, scope="function")


def get_redis_client() -> aioredis.Redis | None:
    """Provide the Redis client, or None when it is not connected."""
    return get_optional_redis()


def get_notifier() -> EmailNotifier:
    return EmailNotifier()


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


async def get_task_service(
    session: AsyncSession = DbSession,
    redis: aioredis.Redis | None = Depends(get_redis_client),
) -> TaskService:
    """Provide a TaskService bound to the current session."""
    return TaskService(session, redis=redis)


async def get_waitlist_service(
    session: AsyncSession = DbSession,
    notifier: EmailNotifier = Depends(get_notifier),
) -> WaitlistService:
    return WaitlistService(session, notifier=notifier)


async def get_contact_service(
    session: AsyncSession = DbSession,
    notifier: EmailNotifier = Depends(get_notifier),
) -> ContactService:
    return ContactService(session, notifier=notifier)


async def get_agent_service(session: AsyncSession = DbSession) -> AgentService:
    return AgentService(session)


async def get_mcp_registry_service(session: AsyncSession = DbSession) -> McpRegistryService:
    return McpRegistryService(session)


async def get_overview_service(session: AsyncSession = DbSession) -> OverviewService:
    return OverviewService(session)

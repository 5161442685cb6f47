"""FastAPI application entry point for the IBWT marketplace backend.

Lifecycle:
    1. Startup: Initialize logging, database, Redis, create tables (dev mode).
    2. Running: Serve REST API + MCP tools on a single Uvicorn process.
    3. Shutdown: Close database and Redis connections gracefully.

The MCP server is mounted at /mcp so agents can discover tasks and bid
alongside the dashboard REST API at /api/*.

Run with:
    uvicorn ibwt_marketplace.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from ibwt_marketplace.config import get_settings
from ibwt_marketplace.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
    )

    # 2. Initialize database
    from ibwt_marketplace.infrastructure.database.engine import close_db, init_db

    await init_db()

    # 3. Initialize Redis (optional: without it tx ids are not de-duplicated)
    from redis.exceptions import RedisError

    from ibwt_marketplace.infrastructure.redis_client import close_redis, init_redis

    try:
        await init_redis()
    except (RedisError, OSError) as exc:
        logger.warning("app.redis_unavailable", error=str(exc))

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await close_db()
    await close_redis()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory: creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="IBWT Marketplace",
        description=(
            "Task marketplace where AI agents bid on and execute tasks, "
            "settled through a Solana escrow."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from ibwt_marketplace.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from ibwt_marketplace.api.routes.agents import router as agents_router
    from ibwt_marketplace.api.routes.health import router as health_router
    from ibwt_marketplace.api.routes.mcp_registry import router as mcp_registry_router
    from ibwt_marketplace.api.routes.overview import router as overview_router
    from ibwt_marketplace.api.routes.public import router as public_router
    from ibwt_marketplace.api.routes.tasks import router as tasks_router

    app.include_router(health_router)
    app.include_router(public_router)
    app.include_router(tasks_router)
    app.include_router(agents_router)
    app.include_router(mcp_registry_router)
    app.include_router(overview_router)

    # --- MCP Server (mounted as sub-application) ---
    from ibwt_marketplace.mcp_server.tools import mcp

    mcp_app = mcp.sse_app()
    app.mount("/mcp", mcp_app)

    return app


# The app instance used by Uvicorn
app = create_app()

"""HTTP tests for the waitlist, contact and health endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ibwt_marketplace.api.deps import get_db_session
from ibwt_marketplace.infrastructure.database.orm_models import WaitlistEntry
from ibwt_marketplace.infrastructure.database.repositories import WaitlistRepository

ADA = "ada@example.com"


async def _waitlist(session_factory) -> dict[str, str]:
    async with session_factory() as session:
        rows = await session.scalars(select(WaitlistEntry))
        return {row.email: row.role for row in rows}


class TestWaitlistEndpoint:
    @pytest.mark.asyncio
    async def test_join(self, client, session_factory) -> None:
        resp = await client.post(
            "/api/waitlist", json={"email": "Ada@Example.com", "role": "agent_provider"}
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert await _waitlist(session_factory) == {"ada@example.com": "agent_provider"}

    @pytest.mark.asyncio
    async def test_rejoin_with_unknown_role(self, client, session_factory) -> None:
        await client.post("/api/waitlist", json={"email": ADA, "role": "mcp_provider"})
        resp = await client.post("/api/waitlist", json={"email": ADA, "role": "bogus"})

        assert resp.status_code == 200
        assert await _waitlist(session_factory) == {"ada@example.com": "user"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [{}, {"email": ""}, {"email": "not-an-email"}, {"email": 123}, {"email": None}]
    )
    async def test_invalid_email(self, client, session_factory, body) -> None:
        resp = await client.post("/api/waitlist", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"error": "Valid email required"}
        assert await _waitlist(session_factory) == {}

    @pytest.mark.asyncio
    async def test_storage_failure(self, client) -> None:
        with patch.object(
            WaitlistRepository, "upsert", AsyncMock(side_effect=SQLAlchemyError("db down"))
        ):
            resp = await client.post("/api/waitlist", json={"email": "ada@example.com"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to join waitlist"}

    @pytest.mark.asyncio
    async def test_missing_body(self, client) -> None:
        resp = await client.post("/api/waitlist")

        assert resp.status_code == 400
        assert resp.json() == {"error": "Valid email required"}

    @pytest.mark.asyncio
    async def test_non_string_role_stored_as_user(self, client, session_factory) -> None:
        resp = await client.post("/api/waitlist", json={"email": "ada@example.com", "role": 5})

        assert resp.status_code == 200
        assert await _waitlist(session_factory) == {"ada@example.com": "user"}

    @pytest.mark.asyncio
    async def test_commit_failure_is_reported(self, app, client, session_factory) -> None:
        async def _session_failing_on_commit():
            async with session_factory() as session:
                session.commit = AsyncMock(
                    side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error"))
                )
                yield session

        app.dependency_overrides[get_db_session] = _session_failing_on_commit

        resp = await client.post("/api/waitlist", json={"email": "ada@example.com"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to join waitlist"}
        assert await _waitlist(session_factory) == {}

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client) -> None:
        resp = await client.post(
            "/api/waitlist",
            json={"email": "ada@example.com"},
            headers={"X-Request-ID": "req-123"},
        )
        assert resp.headers["X-Request-ID"] == "req-123"


class TestContactEndpoint:
    @pytest.mark.asyncio
    async def test_submit(self, client) -> None:
        resp = await client.post(
            "/api/contact",
            json={"name": "Ada", "email": "ada@example.com", "subject": "bug", "message": "Hi"},
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    @pytest.mark.asyncio
    async def test_missing_fields(self, client) -> None:
        resp = await client.post("/api/contact", json={"name": "Ada"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "All fields are required"}

    @pytest.mark.asyncio
    async def test_missing_body(self, client) -> None:
        resp = await client.post("/api/contact")
        assert resp.status_code == 400
        assert resp.json() == {"error": "All fields are required"}


class TestMalformedBody:
    @pytest.mark.asyncio
    async def test_non_json_body(self, client) -> None:
        resp = await client.post(
            "/api/waitlist",
            content=b"email=ada",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid request body"}


class TestHealth:
    @pytest.mark.asyncio
    async def test_degraded_without_redis(self, client, engine) -> None:
        with (
            patch("ibwt_marketplace.api.routes.health._get_engine", return_value=engine),
            patch("ibwt_marketplace.api.routes.health.get_optional_redis", return_value=None),
        ):
            resp = await client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["database"] == "healthy"
        assert body["redis"] == "unavailable"
        assert body["status"] == "degraded"

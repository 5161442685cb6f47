"""Tests for WaitlistService and ContactService."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from ibwt_marketplace.domain.enums import WaitlistRole
from ibwt_marketplace.domain.exceptions import InternalError, ValidationError
from ibwt_marketplace.infrastructure.database.orm_models import ContactMessage
from ibwt_marketplace.infrastructure.database.repositories import WaitlistRepository
from ibwt_marketplace.infrastructure.notifications import EmailNotifier
from ibwt_marketplace.services.contact_service import ContactService
from ibwt_marketplace.services.waitlist_service import WaitlistService


@pytest.fixture
def notifier() -> EmailNotifier:
    mock = AsyncMock(spec=EmailNotifier)
    mock.send.return_value = False
    return mock


class TestWaitlistJoin:
    @pytest.mark.asyncio
    async def test_join_stores_normalized_email(self, session, notifier) -> None:
        svc = WaitlistService(session, notifier=notifier)

        role = await svc.join("  Ada@Example.com ", "agent_provider")

        assert role == WaitlistRole.AGENT_PROVIDER
        entry = await WaitlistRepository(session).get_by_email("ada@example.com")
        assert entry is not None
        assert entry.role == "agent_provider"
        notifier.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_repeat_signup_updates_role(self, session, notifier) -> None:
        svc = WaitlistService(session, notifier=notifier)
        repo = WaitlistRepository(session)

        await svc.join("ada@example.com", "agent_provider")
        await svc.join("ADA@example.com", "bogus")

        assert await repo.count() == 1
        entry = await repo.get_by_email("ada@example.com")
        assert entry.role == "user"

    @pytest.mark.asyncio
    async def test_missing_role_defaults_to_user(self, session, notifier) -> None:
        role = await WaitlistService(session, notifier=notifier).join("bob@example.com")
        assert role == WaitlistRole.USER

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", [None, "", "bob", "bob@example", "bob @example.com"])
    async def test_invalid_email_persists_nothing(self, session, notifier, email) -> None:
        svc = WaitlistService(session, notifier=notifier)

        with pytest.raises(ValidationError, match="Valid email required"):
            await svc.join(email, "user")

        assert await WaitlistRepository(session).count() == 0
        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_failure(self, session, notifier) -> None:
        svc = WaitlistService(session, notifier=notifier)
        failure = OperationalError("INSERT", {}, Exception("database is locked"))

        with patch.object(WaitlistRepository, "upsert", AsyncMock(side_effect=failure)):
            with pytest.raises(InternalError, match="Failed to join waitlist"):
                await svc.join("ada@example.com", "user")

        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_failure_sends_no_email(self, session, notifier) -> None:
        svc = WaitlistService(session, notifier=notifier)
        failure = OperationalError("COMMIT", {}, Exception("disk I/O error"))

        with patch.object(session, "commit", AsyncMock(side_effect=failure)):
            with pytest.raises(InternalError, match="Failed to join waitlist"):
                await svc.join("ada@example.com", "user")

        notifier.send.assert_not_awaited()
        assert await WaitlistRepository(session).count() == 0

    @pytest.mark.asyncio
    async def test_non_string_inputs(self, session, notifier) -> None:
        svc = WaitlistService(session, notifier=notifier)

        with pytest.raises(ValidationError, match="Valid email required"):
            await svc.join(42, "user")
        assert await svc.join("ada@example.com", ["agent_provider"]) == WaitlistRole.USER

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_signup(self, session) -> None:
        notifier = AsyncMock(spec=EmailNotifier)
        notifier.send.return_value = False
        role = await WaitlistService(session, notifier=notifier).join("eve@example.com", "other")
        assert role == WaitlistRole.OTHER


class TestContactSubmit:
    @pytest.mark.asyncio
    async def test_stores_and_notifies(self, session, notifier) -> None:
        row = await ContactService(session, notifier=notifier).submit(
            name="Ada", email="ada@example.com", subject="agent", message="Hello"
        )

        assert row.id
        notification = notifier.send.await_args.args[0]
        assert notification.subject == "IBWT Contact: Register Agent"
        assert notification.reply_to == "ada@example.com"

    @pytest.mark.asyncio
    async def test_missing_field(self, session, notifier) -> None:
        with pytest.raises(ValidationError, match="All fields are required"):
            await ContactService(session, notifier=notifier).submit(
                name="Ada", email="ada@example.com", subject="", message="Hello"
            )
        assert await session.scalar(select(func.count(ContactMessage.id))) == 0

    @pytest.mark.asyncio
    async def test_invalid_email(self, session, notifier) -> None:
        with pytest.raises(ValidationError, match="Valid email required"):
            await ContactService(session, notifier=notifier).submit(
                name="Ada", email="nope", subject="general", message="Hello"
            )

    @pytest.mark.asyncio
    async def test_commit_failure_sends_no_email(self, session, notifier) -> None:
        failure = OperationalError("COMMIT", {}, Exception("disk I/O error"))

        with patch.object(session, "commit", AsyncMock(side_effect=failure)):
            with pytest.raises(InternalError, match="Failed to send message"):
                await ContactService(session, notifier=notifier).submit(
                    name="Ada", email="ada@example.com", subject="general", message="Hello"
                )

        notifier.send.assert_not_awaited()
        assert await session.scalar(select(func.count(ContactMessage.id))) == 0

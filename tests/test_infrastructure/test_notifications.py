"""Tests for the Resend notification client."""

from __future__ import annotations

import json

import httpx
import pytest

from ibwt_marketplace.config import Settings
from ibwt_marketplace.infrastructure.notifications import EmailNotifier, Notification


def _settings(**overrides) -> Settings:
    values = {
        "resend_api_key": "re_test_key",
        "notify_email": "ops@example.com",
        "notify_from": "IBWT <noreply@example.com>",
    }
    values.update(overrides)
    return Settings(**values)


class TestEmailNotifier:
    @pytest.mark.asyncio
    async def test_sends_to_resend(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"id": "email-1"})

        notifier = EmailNotifier(settings=_settings(), transport=httpx.MockTransport(handler))
        sent = await notifier.send(
            Notification(subject="Hi", text="Body", reply_to="ada@example.com")
        )

        assert sent is True
        request = captured[0]
        assert request.headers["Authorization"] == "Bearer re_test_key"
        payload = json.loads(request.content)
        assert payload == {
            "from": "IBWT <noreply@example.com>",
            "to": "ops@example.com",
            "subject": "Hi",
            "text": "Body",
            "reply_to": "ada@example.com",
        }

    @pytest.mark.asyncio
    async def test_without_api_key_only_logs(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        notifier = EmailNotifier(
            settings=_settings(resend_api_key=""), transport=httpx.MockTransport(handler)
        )
        assert await notifier.send(Notification(subject="Hi", text="Body")) is False

    @pytest.mark.asyncio
    async def test_rejected_by_provider(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(422, text="bad sender"))
        notifier = EmailNotifier(settings=_settings(), transport=transport)
        assert await notifier.send(Notification(subject="Hi", text="Body")) is False

    @pytest.mark.asyncio
    async def test_network_error_is_swallowed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = EmailNotifier(settings=_settings(), transport=httpx.MockTransport(handler))
        assert await notifier.send(Notification(subject="Hi", text="Body")) is False

"""Notification emails through the Resend HTTP API.

Notifications are best-effort: a delivery failure is logged and never fails
the signup or contact request that triggered it. Without a configured API
key, or without a recipient, the message is written to the log instead.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from ibwt_marketplace.config import Settings, get_settings
from ibwt_marketplace.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    subject: str
    text: str
    reply_to: str | None = None


class EmailNotifier:
    """Sends operator notifications.

    Args:
        settings: Application settings (API key, recipient, sender, timeout).
        transport: Optional httpx transport, used by tests to stub Resend.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    async def send(self, notification: Notification) -> bool:
        """Deliver a notification. Returns True if Resend accepted it."""
        settings = self._settings
        if not settings.resend_api_key or not settings.notify_email:
            logger.info(
                "notification.logged",
                to=settings.notify_email or None,
                subject=notification.subject,
                reply_to=notification.reply_to,
                text=notification.text,
            )
            return False

        payload: dict = {
            "from": settings.notify_from,
            "to": settings.notify_email,
            "subject": notification.subject,
            "text": notification.text,
        }
        if notification.reply_to:
            payload["reply_to"] = notification.reply_to

        try:
            async with httpx.AsyncClient(
                timeout=settings.notification_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    settings.resend_api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                )
        except httpx.HTTPError as exc:
            logger.warning("notification.delivery_failed", error=str(exc))
            return False

        if response.is_error:
            logger.warning(
                "notification.rejected",
                status_code=response.status_code,
                body=response.text[:500],
            )
            return False

        logger.info("notification.sent", subject=notification.subject)
        return True

"""Contact Service: stores contact form submissions and forwards them."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from ibwt_marketplace.domain.exceptions import InternalError, ValidationError
from ibwt_marketplace.domain.validation import is_valid_email
from ibwt_marketplace.infrastructure.database.orm_models import ContactMessage
from ibwt_marketplace.infrastructure.database.repositories import ContactRepository
from ibwt_marketplace.infrastructure.notifications import EmailNotifier, Notification
from ibwt_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SUBJECT_LABELS = {
    "general": "General Inquiry",
    "partnership": "Partnership",
    "agent": "Register Agent",
    "mcp": "Register MCP Tool",
    "bug": "Bug Report",
    "other": "Other",
}


class ContactService:
    def __init__(self, session: AsyncSession, notifier: EmailNotifier | None = None) -> None:
        self._session = session
        self._repo = ContactRepository(session)
        self._notifier = notifier or EmailNotifier()

    async def submit(
        self,
        name: str | None,
        email: str | None,
        subject: str | None,
        message: str | None,
    ) -> ContactMessage:
        """Validate, store and forward a contact message."""
        if not name or not email or not subject or not message:
            raise ValidationError("All fields are required")
        if not is_valid_email(email):
            raise ValidationError("Valid email required")

        try:
            row = await self._repo.create(
                ContactMessage(
                    name=name.strip(),
                    email=email.strip(),
                    subject=subject,
                    message=message,
                )
            )
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("contact.persist_failed", error=str(exc), exc_info=True)
            raise InternalError("Failed to send message") from exc

        label = SUBJECT_LABELS.get(subject, subject)
        logger.info("contact.received", contact_id=row.id, subject=subject)

        await self._notifier.send(
            Notification(
                subject=f"IBWT Contact: {label}",
                text=(
                    "New contact form submission:\n\n"
                    f"From: {row.name} <{row.email}>\n"
                    f"Subject: {label}\n"
                    f"Time: {datetime.now(UTC).isoformat()}\n\n"
                    f"Message:\n{message}"
                ),
                reply_to=row.email,
            )
        )
        return row

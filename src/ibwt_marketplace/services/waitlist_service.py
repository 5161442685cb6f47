"""Waitlist Service: pre-launch signups.

Validation policy:
    - The email must be present and match the basic address pattern, else
      ValidationError("Valid email required").
    - The role is permissive: anything unrecognized silently becomes "user".
    - Repeat signups are idempotent by email; the latest role wins.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from ibwt_marketplace.domain.enums import WaitlistRole
from ibwt_marketplace.domain.exceptions import InternalError, ValidationError
from ibwt_marketplace.domain.validation import is_valid_email, normalize_email
from ibwt_marketplace.infrastructure.database.repositories import WaitlistRepository
from ibwt_marketplace.infrastructure.notifications import EmailNotifier, Notification
from ibwt_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

INVALID_EMAIL_MESSAGE = "Valid email required"
JOIN_FAILED_MESSAGE = "Failed to join waitlist"


class WaitlistService:
    """Records waitlist signups and notifies the operators."""

    def __init__(self, session: AsyncSession, notifier: EmailNotifier | None = None) -> None:
        self._session = session
        self._repo = WaitlistRepository(session)
        self._notifier = notifier or EmailNotifier()

    async def join(self, email: object, role: object = None) -> WaitlistRole:
        """Upsert a signup keyed by email and return the role that was stored.

        The signup is committed before the operators are notified, so a
        storage failure surfaces as InternalError and sends no email.
        """
        if not is_valid_email(email):
            raise ValidationError(INVALID_EMAIL_MESSAGE)

        normalized = normalize_email(email)
        resolved_role = WaitlistRole.coerce(role)
        if role is not None and resolved_role.value != role:
            logger.debug("waitlist.role_defaulted", submitted_role=repr(role))

        try:
            await self._repo.upsert(normalized, resolved_role.value)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("waitlist.persist_failed", error=str(exc), exc_info=True)
            raise InternalError(JOIN_FAILED_MESSAGE) from exc

        logger.info("waitlist.joined", role=resolved_role.value)

        await self._notifier.send(
            Notification(
                subject="New IBWT Waitlist Signup",
                text=(
                    "New waitlist signup:\n\n"
                    f"Email: {normalized}\n"
                    f"Role: {resolved_role.value}\n"
                    f"Time: {datetime.now(UTC).isoformat()}"
                ),
            )
        )
        return resolved_role

"""Input checks shared by the waitlist and contact forms."""

from __future__ import annotations

import re

# Non-whitespace local part, "@", domain, dot, suffix.
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: object) -> bool:
    """Return True if ``value`` is a string that looks like an email address."""
    if not isinstance(value, str):
        return False
    return EMAIL_PATTERN.fullmatch(value.strip()) is not None


def normalize_email(value: str) -> str:
    """Canonical form used as the waitlist key: trimmed and lower-cased."""
    return value.strip().lower()

"""Pydantic schemas for the public site endpoints (waitlist, contact, health).

Waitlist and contact fields are optional here so that a missing value reaches
the service and produces the same error message as an invalid one. Waitlist
fields also accept any JSON type: a non-string email is reported as an invalid
email, and a non-string role falls back to "user".
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class WaitlistRequest(BaseModel):
    """Request body for joining the waitlist."""

    email: Any = Field(default=None, examples=["ada@example.com"])
    role: Any = Field(
        default=None,
        description="user, agent_provider, mcp_provider or other; anything else means user",
    )


class ContactRequest(BaseModel):
    """Request body for the contact form."""

    name: str | None = None
    email: str | None = None
    subject: str | None = Field(
        default=None,
        description="general, partnership, agent, mcp, bug or other",
    )
    message: str | None = Field(default=None, max_length=10_000)


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
    redis: str = "unknown"

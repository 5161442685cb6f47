"""Public site endpoints: waitlist signup and contact form.

Routes:
    POST   /api/waitlist  - Join (or re-join) the pre-launch waitlist
    POST   /api/contact   - Send a message to the team
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from ibwt_marketplace.api.deps import get_contact_service, get_waitlist_service
from ibwt_marketplace.schemas.public import (
    ContactRequest,
    ErrorResponse,
    SuccessResponse,
    WaitlistRequest,
)
from ibwt_marketplace.services.contact_service import ContactService
from ibwt_marketplace.services.waitlist_service import WaitlistService

router = APIRouter(prefix="/api", tags=["Public"])

_ERRORS = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.post(
    "/waitlist",
    response_model=SuccessResponse,
    responses=_ERRORS,
    summary="Join the waitlist",
)
async def join_waitlist(
    request: WaitlistRequest | None = Body(default=None),
    svc: WaitlistService = Depends(get_waitlist_service),
) -> SuccessResponse:
    """Upsert a signup keyed by email. Unknown roles are stored as 'user'."""
    request = request or WaitlistRequest()
    await svc.join(email=request.email, role=request.role)
    return SuccessResponse()


@router.post(
    "/contact",
    response_model=SuccessResponse,
    responses=_ERRORS,
    summary="Send a contact message",
)
async def submit_contact(
    request: ContactRequest | None = Body(default=None),
    svc: ContactService = Depends(get_contact_service),
) -> SuccessResponse:
    request = request or ContactRequest()
    await svc.submit(
        name=request.name,
        email=request.email,
        subject=request.subject,
        message=request.message,
    )
    return SuccessResponse()

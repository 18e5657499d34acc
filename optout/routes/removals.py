"""Public removal request and verification routes."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from optout.config import settings
from optout.database import get_session
from optout.dependencies import get_client_ip
from optout.schemas.removal import RemovalRequestCreate, RemovalResult
from optout.services import intake_service, verification_service
from optout.services.exceptions import SuppressionError

logger = logging.getLogger(__name__)

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.post("/api/removals", response_model=RemovalResult, tags=["Removals"])
async def submit_removal_request(
    payload: RemovalRequestCreate,
    db: AsyncSession = Depends(get_session),
    client_ip: str = Depends(get_client_ip),
) -> RemovalResult:
    """
    Submit a public removal request for an obituary.

    The obituary is **not** hidden yet. A verification link is emailed to
    the requester; the listing is removed once that link is confirmed.

    **Error Codes:**
    - `VALIDATION_ERROR` (400): bad obituary id, email, name or reason
    - `RATE_LIMITED` (429): too many requests from this address
    - `REQUEST_ALREADY_PENDING` (409): requests for this obituary await verification
    - `PERSISTENCE_ERROR` (500): the request could not be stored
    """
    return await intake_service.submit_removal_request(
        db,
        obituary_id=payload.obituary_id,
        name=payload.name,
        email=payload.email,
        relationship=payload.relationship,
        notes=payload.notes,
        requester_ip=client_ip,
        reason=payload.reason,
    )


@router.get("/removals/verify/{token}", response_class=HTMLResponse, tags=["Removals"])
async def verify_confirm(request: Request, token: str) -> HTMLResponse:
    """
    Show the confirmation page for a verification link.

    Nothing is redeemed on GET, so link scanners and mail prefetchers cannot
    consume the token. The page posts back to the same URL.
    """
    return templates.TemplateResponse(
        request,
        "removal/confirm.html",
        {"token": token, "site_name": settings.SITE_NAME},
    )


@router.post("/removals/verify/{token}", response_class=HTMLResponse, tags=["Removals"])
async def verify_process(
    request: Request,
    token: str,
    db: AsyncSession = Depends(get_session),
) -> HTMLResponse:
    """Redeem a verification token and hide the obituary."""
    try:
        result = await verification_service.verify_request(db, token)
    except SuppressionError as e:
        return templates.TemplateResponse(
            request,
            "removal/error.html",
            {"error_message": e.message, "site_name": settings.SITE_NAME},
            status_code=e.status_code,
        )

    return templates.TemplateResponse(
        request,
        "removal/verified.html",
        {"message": result.message, "site_name": settings.SITE_NAME},
    )

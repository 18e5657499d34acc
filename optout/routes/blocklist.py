"""Do-not-republish lookups for the ingestion pipeline."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from optout.database import get_session
from optout.dependencies import require_auth
from optout.schemas.removal import BlocklistCheckResponse, BlocklistLookupRequest
from optout.services import ledger_service
from optout.utils.fingerprint import compute_fingerprint

router = APIRouter(prefix="/api/blocklist", tags=["Blocklist"])


@router.post("/check", response_model=BlocklistCheckResponse)
async def check_listing(
    payload: BlocklistLookupRequest,
    db: AsyncSession = Depends(get_session),
    actor: str = Depends(require_auth),
) -> BlocklistCheckResponse:
    """
    Check a scraped listing by its identity fields.

    The fingerprint is derived the same way it was when the listing was
    first ingested, so callers need not hash anything themselves.
    """
    fingerprint = compute_fingerprint(
        payload.name,
        payload.date_of_death,
        payload.funeral_home,
        payload.city,
    )
    blocked = await ledger_service.is_blocked(db, fingerprint)
    return BlocklistCheckResponse(fingerprint=fingerprint, blocked=blocked)


@router.get("/{fingerprint}", response_model=BlocklistCheckResponse)
async def check_fingerprint(
    fingerprint: str,
    db: AsyncSession = Depends(get_session),
    actor: str = Depends(require_auth),
) -> BlocklistCheckResponse:
    """
    Check whether content with this fingerprint may be (re)published.

    Ingestion must skip any listing whose fingerprint is blocked, even if
    the original obituary row has since been deleted.
    """
    blocked = await ledger_service.is_blocked(db, fingerprint)
    return BlocklistCheckResponse(fingerprint=fingerprint, blocked=blocked)

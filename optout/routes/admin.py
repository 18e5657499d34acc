"""Operator routes: suppression, unsuppression, review queue and audit log."""

from math import ceil
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from optout.database import get_session
from optout.dependencies import require_auth
from optout.schemas.removal import (
    SuppressionItem,
    SuppressionListResponse,
    SuppressRequest,
    SuppressResponse,
    UnsuppressRequest,
    UnsuppressResponse,
)
from optout.services import admin_service, ledger_service

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.post("/obituaries/{obituary_id}/suppress", response_model=SuppressResponse)
async def suppress_obituary(
    obituary_id: UUID,
    payload: SuppressRequest,
    db: AsyncSession = Depends(get_session),
    actor: str = Depends(require_auth),
) -> SuppressResponse:
    """
    Hide an obituary immediately.

    `admin_action`, `legal_notice` and `privacy` actions are recorded as
    verified and reviewed by the calling operator. Any other reason is
    suppressed but stays in the review queue. Unknown reasons are recorded
    as `admin_action`.
    """
    suppression_id = await admin_service.suppress(
        db,
        obituary_id,
        reason=payload.reason,
        requester=payload.requester.model_dump() if payload.requester else None,
        notes=payload.notes,
        acting_user=actor,
    )
    return SuppressResponse(suppression_id=suppression_id)


@router.post("/obituaries/{obituary_id}/unsuppress", response_model=UnsuppressResponse)
async def unsuppress_obituary(
    obituary_id: UUID,
    payload: UnsuppressRequest | None = None,
    db: AsyncSession = Depends(get_session),
    actor: str = Depends(require_auth),
) -> UnsuppressResponse:
    """Restore an obituary to display and lift its do-not-republish flags."""
    cleared = await admin_service.unsuppress(
        db,
        obituary_id,
        notes=payload.notes if payload else "",
        acting_user=actor,
    )
    return UnsuppressResponse(obituary_id=obituary_id, records_cleared=cleared)


@router.get("/removals/pending", response_model=list[SuppressionItem])
async def list_pending_for_review(
    db: AsyncSession = Depends(get_session),
    actor: str = Depends(require_auth),
) -> list[SuppressionItem]:
    """Unreviewed removal records, newest first."""
    records = await ledger_service.list_pending_for_review(db)
    return [SuppressionItem.model_validate(record) for record in records]


@router.post("/removals/{suppression_id}/review", response_model=SuppressionItem)
async def mark_reviewed(
    suppression_id: UUID,
    db: AsyncSession = Depends(get_session),
    actor: str = Depends(require_auth),
) -> SuppressionItem:
    """Mark a ledger row as reviewed by the calling operator."""
    record = await admin_service.mark_reviewed(db, suppression_id, actor)
    return SuppressionItem.model_validate(record)


@router.get("/removals", response_model=SuppressionListResponse)
async def list_suppressions(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(25, ge=1, le=100, description="Items per page (max 100)"),
    reason: str | None = Query(None, description="Filter by suppression reason"),
    db: AsyncSession = Depends(get_session),
    actor: str = Depends(require_auth),
) -> SuppressionListResponse:
    """Paginated audit log of every removal request and action."""
    records, total = await ledger_service.list_suppressions(
        db,
        page=page,
        page_size=page_size,
        reason=reason,
    )
    return SuppressionListResponse(
        items=[SuppressionItem.model_validate(record) for record in records],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=ceil(total / page_size) if total > 0 else 0,
    )

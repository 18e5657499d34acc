"""Subject store access: obituary lookup and visibility projection."""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from optout.models.obituary import Obituary

logger = logging.getLogger(__name__)


async def get_obituary(db: AsyncSession, obituary_id: uuid.UUID) -> Obituary | None:
    """Fetch an obituary by id, or None if it does not exist."""
    result = await db.execute(select(Obituary).where(Obituary.id == obituary_id))
    return result.scalar_one_or_none()


async def apply_suppression(
    db: AsyncSession,
    obituary_id: uuid.UUID | None,
    suppressed_at: datetime,
    reason: str,
) -> bool:
    """
    Hide an obituary from public display.

    Returns False when the obituary no longer exists; the ledger row still
    carries the fingerprint, so the listing stays blocked on re-ingestion.
    """
    if obituary_id is None:
        return False

    obituary = await get_obituary(db, obituary_id)
    if obituary is None:
        logger.warning(f"Obituary {obituary_id} not found while applying suppression")
        return False

    obituary.suppressed_at = suppressed_at
    obituary.suppressed_reason = reason
    await db.flush()
    return True


async def clear_suppression(db: AsyncSession, obituary_id: uuid.UUID) -> bool:
    """Restore an obituary to public display. Returns False if it does not exist."""
    obituary = await get_obituary(db, obituary_id)
    if obituary is None:
        return False

    obituary.suppressed_at = None
    obituary.suppressed_reason = None
    await db.flush()
    return True

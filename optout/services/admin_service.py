"""Operator actions: immediate suppression, unsuppression and review marking.

These paths skip intake, the abuse guard and token verification. Callers
must only reach them from an already-privileged context; `acting_user`
decides whether an action is also recorded as verified and reviewed.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from optout.models.suppression import (
    INSTANT_SUPPRESS_REASONS,
    SuppressionReason,
    SuppressionRecord,
)
from optout.services import ledger_service, obituary_service
from optout.services.exceptions import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_UNSUPPRESS_NOTE = "Unsuppressed by admin"

_VALID_REASONS = {reason.value for reason in SuppressionReason}


def coerce_reason(reason: str | None) -> str:
    """Map an unknown reason to admin_action. Operator path only."""
    if reason in _VALID_REASONS:
        return reason
    logger.warning(f"Unknown suppression reason {reason!r} recorded as admin_action")
    return SuppressionReason.ADMIN_ACTION.value


async def suppress(
    db: AsyncSession,
    obituary_id: uuid.UUID,
    reason: str | None = SuppressionReason.ADMIN_ACTION.value,
    requester: dict[str, str] | None = None,
    notes: str = "",
    acting_user: str | None = None,
) -> uuid.UUID:
    """
    Hide an obituary immediately and record the action in the ledger.

    The record is auto-verified and auto-reviewed only for admin, legal or
    privacy reasons taken by an authenticated operator. Anything else is
    still suppressed but lands in the review queue.

    Returns:
        The new suppression record id

    Raises:
        NotFoundError: obituary does not exist
    """
    reason = coerce_reason(reason)

    obituary = await obituary_service.get_obituary(db, obituary_id)
    if obituary is None:
        raise NotFoundError("Obituary not found.")

    trusted = reason in INSTANT_SUPPRESS_REASONS and bool(acting_user)

    record = await ledger_service.insert_instant(
        db,
        obituary,
        reason=reason,
        requester=requester,
        notes=(notes or "").strip(),
        auto_verify=trusted,
        auto_review=trusted,
        reviewed_by=acting_user if trusted else None,
    )
    await obituary_service.apply_suppression(db, obituary_id, record.suppressed_at, reason)

    logger.info(
        f"Obituary {obituary_id} suppressed (reason: {reason}, "
        f"by user: {acting_user or 'unauthenticated'}, reviewed: {trusted})"
    )
    return record.id


async def unsuppress(
    db: AsyncSession,
    obituary_id: uuid.UUID,
    notes: str = "",
    acting_user: str | None = None,
) -> int:
    """
    Restore an obituary and lift do-not-republish on all its ledger rows.

    History is kept: rows are not deleted and their verified/suppressed
    timestamps are not touched.

    An obituary row that has since been deleted can still be unsuppressed
    while ledger rows reference it.

    Returns:
        Number of ledger rows updated

    Raises:
        NotFoundError: neither the obituary nor any ledger row exists
    """
    restored = await obituary_service.clear_suppression(db, obituary_id)
    note = (notes or "").strip() or DEFAULT_UNSUPPRESS_NOTE
    records = await ledger_service.clear_suppression(db, obituary_id, note)
    if not restored and not records:
        raise NotFoundError("Obituary not found.")

    logger.info(
        f"Obituary {obituary_id} unsuppressed by admin "
        f"(user: {acting_user or 'unauthenticated'}, records: {len(records)})"
    )
    return len(records)


async def mark_reviewed(
    db: AsyncSession,
    suppression_id: uuid.UUID,
    acting_user: str | None,
) -> SuppressionRecord:
    """
    Stamp a ledger row as reviewed. Idempotent; re-reviewing restamps.

    Raises:
        NotFoundError: no such suppression record
    """
    record = await ledger_service.mark_reviewed(db, suppression_id, acting_user)
    if record is None:
        raise NotFoundError("Suppression record not found.")

    logger.info(f"Suppression {suppression_id} reviewed by {acting_user or 'unauthenticated'}")
    return record

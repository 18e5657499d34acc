"""Suppression ledger: the append-mostly audit store behind every removal.

Rows are inserted by public intake (pending) or by the admin gateway
(suppressed at once) and are never deleted. The pending → verified
transition is a single conditional UPDATE so that two concurrent
redemptions of one token cannot both succeed.
"""

import logging
import uuid
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from optout.config import settings
from optout.models.obituary import Obituary
from optout.models.suppression import (
    PUBLIC_REASONS,
    SuppressionReason,
    SuppressionRecord,
)
from optout.services import token_service
from optout.services.exceptions import IssueError, PersistenceError
from optout.utils import clock

logger = logging.getLogger(__name__)


def _subject_snapshot(obituary: Obituary) -> dict[str, Any]:
    return {
        "obituary_id": obituary.id,
        "content_fingerprint": obituary.content_fingerprint or "",
        "subject_name": obituary.name,
        "date_of_death": obituary.date_of_death,
    }


def _append_note(existing: str | None, note: str) -> str:
    if not existing:
        return note
    return f"{existing}\n{note}"


async def _flush_new(db: AsyncSession, record: SuppressionRecord) -> SuppressionRecord:
    token = record.verification_token
    db.add(record)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        if token is None:
            logger.error(f"Integrity error inserting suppression record: {e}")
            raise PersistenceError() from e
        raise IssueError(details={"token": token_service.token_prefix(token)}) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to insert suppression record: {e}")
        raise PersistenceError() from e
    return record


async def insert_pending(
    db: AsyncSession,
    obituary: Obituary,
    requester_name: str,
    requester_email: str,
    requester_relationship: str = "",
    requester_ip: str = "",
    notes: str = "",
    reason: str = SuppressionReason.FAMILY_REQUEST.value,
) -> SuppressionRecord:
    """
    Create a pending removal request carrying a fresh verification token.

    A token that collides with an active one is replaced by a new token,
    up to TOKEN_ISSUE_ATTEMPTS times.

    Raises:
        PersistenceError: if the row could not be written
    """
    now = clock.now()
    # Snapshot before any rollback expires the obituary instance
    fields = {
        **_subject_snapshot(obituary),
        "reason": reason,
        "requester_name": requester_name,
        "requester_email": requester_email,
        "requester_relationship": requester_relationship,
        "requester_ip": requester_ip,
        "notes": notes,
        "do_not_republish": False,
        "created_at": now,
    }

    for attempt in range(1, settings.TOKEN_ISSUE_ATTEMPTS + 1):
        record = SuppressionRecord(
            id=uuid4(),
            verification_token=token_service.generate_token(),
            token_created_at=now,
            **fields,
        )
        try:
            return await _flush_new(db, record)
        except IssueError as e:
            logger.warning(
                f"Verification token collision on attempt {attempt} "
                f"({e.details.get('token')}), issuing a new token"
            )

    logger.error(
        f"Could not issue a unique verification token after "
        f"{settings.TOKEN_ISSUE_ATTEMPTS} attempts for obituary {fields['obituary_id']}"
    )
    raise PersistenceError()


async def insert_instant(
    db: AsyncSession,
    obituary: Obituary,
    reason: str,
    requester: dict[str, str] | None = None,
    notes: str = "",
    auto_verify: bool = False,
    auto_review: bool = False,
    reviewed_by: str | None = None,
) -> SuppressionRecord:
    """
    Record an immediate (admin path) suppression. No token is issued.

    Raises:
        PersistenceError: if the row could not be written
    """
    now = clock.now()
    requester = requester or {}
    record = SuppressionRecord(
        id=uuid4(),
        **_subject_snapshot(obituary),
        reason=reason,
        requester_name=(requester.get("name") or "").strip(),
        requester_email=(requester.get("email") or "").strip(),
        requester_relationship=(requester.get("relationship") or "").strip(),
        suppressed_at=now,
        notes=notes,
        do_not_republish=True,
        created_at=now,
    )
    if auto_verify:
        record.verified_at = now
    if auto_review:
        record.reviewed_by = reviewed_by
        record.reviewed_at = now

    return await _flush_new(db, record)


async def find_by_active_token(db: AsyncSession, token: str) -> SuppressionRecord | None:
    """Unredeemed record holding `token`, or None."""
    result = await db.execute(
        select(SuppressionRecord).where(
            SuppressionRecord.verification_token == token,
            SuppressionRecord.verified_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


async def mark_verified_and_suppressed(
    db: AsyncSession,
    record_id: uuid.UUID,
    token: str,
    now: datetime | None = None,
) -> SuppressionRecord | None:
    """
    Atomically move a pending record to verified-suppressed.

    The update only matches while the row still holds `token` and is
    unverified. Returns the refreshed record, or None when another
    redemption got there first.
    """
    now = now or clock.now()
    result = await db.execute(
        update(SuppressionRecord)
        .where(
            SuppressionRecord.id == record_id,
            SuppressionRecord.verification_token == token,
            SuppressionRecord.verified_at.is_(None),
        )
        .values(
            verified_at=now,
            suppressed_at=now,
            do_not_republish=True,
            verification_token=None,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None

    refreshed = await db.execute(
        select(SuppressionRecord)
        .where(SuppressionRecord.id == record_id)
        .execution_options(populate_existing=True)
    )
    return refreshed.scalar_one()


async def get_suppression(db: AsyncSession, suppression_id: uuid.UUID) -> SuppressionRecord | None:
    result = await db.execute(
        select(SuppressionRecord).where(SuppressionRecord.id == suppression_id)
    )
    return result.scalar_one_or_none()


async def mark_reviewed(
    db: AsyncSession,
    suppression_id: uuid.UUID,
    actor: str | None,
) -> SuppressionRecord | None:
    """Stamp reviewer and review time. No precondition on the record's state."""
    record = await get_suppression(db, suppression_id)
    if record is None:
        return None

    record.reviewed_by = actor
    record.reviewed_at = clock.now()
    await db.flush()
    return record


async def clear_suppression(
    db: AsyncSession,
    obituary_id: uuid.UUID,
    note: str,
) -> list[SuppressionRecord]:
    """
    Lift the do-not-republish flag on every record for an obituary.

    Rows are kept and `verified_at` / `suppressed_at` are left as recorded;
    only the flag changes and `note` is appended to each row's notes.
    """
    result = await db.execute(
        select(SuppressionRecord).where(SuppressionRecord.obituary_id == obituary_id)
    )
    records = list(result.scalars().all())

    for record in records:
        record.do_not_republish = False
        record.notes = _append_note(record.notes, note)

    await db.flush()
    return records


async def count_pending_public(db: AsyncSession, obituary_id: uuid.UUID) -> int:
    """Unverified, unsuppressed family/funeral-home requests for an obituary."""
    result = await db.execute(
        select(func.count())
        .select_from(SuppressionRecord)
        .where(
            SuppressionRecord.obituary_id == obituary_id,
            SuppressionRecord.verified_at.is_(None),
            SuppressionRecord.suppressed_at.is_(None),
            SuppressionRecord.reason.in_(PUBLIC_REASONS),
        )
    )
    return result.scalar() or 0


async def list_pending_for_review(db: AsyncSession) -> list[SuppressionRecord]:
    """
    Operator triage queue: unreviewed records, newest first.

    Admin actions are excluded; legal and privacy actions by an
    unauthenticated caller are not auto-reviewed and so do appear.
    """
    result = await db.execute(
        select(SuppressionRecord)
        .where(
            SuppressionRecord.reviewed_at.is_(None),
            SuppressionRecord.reason != SuppressionReason.ADMIN_ACTION.value,
        )
        .order_by(SuppressionRecord.created_at.desc())
    )
    return list(result.scalars().all())


async def is_blocked(db: AsyncSession, fingerprint: str | None) -> bool:
    """True if any record carrying `fingerprint` is marked do-not-republish."""
    if not fingerprint:
        return False

    result = await db.execute(
        select(func.count())
        .select_from(SuppressionRecord)
        .where(
            SuppressionRecord.content_fingerprint == fingerprint,
            SuppressionRecord.do_not_republish.is_(True),
        )
    )
    return (result.scalar() or 0) > 0


async def list_suppressions(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 25,
    reason: str | None = None,
) -> tuple[list[SuppressionRecord], int]:
    """
    Get the paginated audit log with an optional reason filter.

    Returns:
        Tuple of (records, total count)
    """
    query = select(SuppressionRecord)
    if reason:
        query = query.where(SuppressionRecord.reason == reason)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * page_size
    query = query.order_by(SuppressionRecord.created_at.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)

    return list(result.scalars().all()), total

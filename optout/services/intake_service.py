"""Public removal request intake.

A request never hides anything by itself: it creates a pending ledger row
and emails the requester a single-use link. The obituary is suppressed only
when that link is redeemed (see verification_service).
"""

import logging
import uuid

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from optout.config import settings
from optout.models.suppression import PUBLIC_REASONS, SuppressionReason
from optout.schemas.removal import RemovalResult
from optout.services import (
    ledger_service,
    notification_service,
    obituary_service,
    rate_limiter,
)
from optout.services.exceptions import (
    DuplicateError,
    PersistenceError,
    RateLimitError,
    UnavailableError,
    ValidationError,
)
from optout.services.rate_limiter import RateLimitStore
from optout.utils.email_masking import mask_email
from optout.utils.email_validator import normalize_email, validate_email

logger = logging.getLogger(__name__)

# Column widths of the ledger
MAX_NAME_LENGTH = 200
MAX_RELATIONSHIP_LENGTH = 100

SUBMITTED_MESSAGE = (
    "Your removal request has been received. Please check your email to verify "
    "the request. Once verified, the obituary will be removed from public display."
)


def _parse_obituary_id(obituary_id: uuid.UUID | str | None) -> uuid.UUID:
    if isinstance(obituary_id, uuid.UUID):
        return obituary_id
    try:
        return uuid.UUID(str(obituary_id or "").strip())
    except ValueError:
        raise ValidationError("obituary_id", "Invalid obituary ID.")


async def submit_removal_request(
    db: AsyncSession,
    obituary_id: uuid.UUID | str | None,
    name: str | None,
    email: str | None,
    relationship: str = "",
    notes: str = "",
    requester_ip: str = "",
    reason: str = SuppressionReason.FAMILY_REQUEST.value,
    rate_store: RateLimitStore | None = None,
) -> RemovalResult:
    """
    Validate and record a public removal request.

    Validation stops at the first bad field. Abuse checks run after
    validation and before anything is written. The rate limit slot is only
    consumed once the pending row is committed, and the two notifications
    are sent after that, best-effort.

    Raises:
        ValidationError: invalid obituary, email, name, relationship or reason
        RateLimitError: origin exceeded its hourly submissions
        UnavailableError: the rate limit store could not be reached
        DuplicateError: obituary already holds the maximum pending requests
        PersistenceError: the pending row could not be stored
    """
    subject_id = _parse_obituary_id(obituary_id)

    obituary = await obituary_service.get_obituary(db, subject_id)
    if obituary is None:
        raise ValidationError("obituary_id", "Obituary not found.")
    if obituary.is_suppressed:
        raise ValidationError(
            "obituary_id", "This obituary has already been removed from display."
        )

    is_valid, _ = validate_email(email)
    if not is_valid:
        raise ValidationError("email", "A valid email address is required.")

    name = (name or "").strip()
    if not name:
        raise ValidationError("name", "Your name is required.")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError("name", f"Name must be {MAX_NAME_LENGTH} characters or fewer.")

    relationship = (relationship or "").strip()
    if len(relationship) > MAX_RELATIONSHIP_LENGTH:
        raise ValidationError(
            "relationship",
            f"Relationship must be {MAX_RELATIONSHIP_LENGTH} characters or fewer.",
        )

    if reason not in PUBLIC_REASONS:
        raise ValidationError("reason", "Invalid request reason.")

    try:
        limited = await rate_limiter.is_rate_limited(requester_ip, rate_store)
    except RedisError as e:
        logger.error(f"Rate limit store unavailable, rejecting removal request: {e}")
        raise UnavailableError() from e
    if limited:
        logger.warning(f"Removal request rate limited for obituary {subject_id}")
        raise RateLimitError()

    pending = await ledger_service.count_pending_public(db, subject_id)
    if pending >= settings.MAX_PENDING_PER_OBITUARY:
        logger.info(f"Duplicate removal request rejected for obituary {subject_id}")
        raise DuplicateError()

    record = await ledger_service.insert_pending(
        db,
        obituary,
        requester_name=name,
        requester_email=normalize_email(email),
        requester_relationship=relationship,
        requester_ip=requester_ip or "",
        notes=(notes or "").strip(),
        reason=reason,
    )
    token = record.verification_token

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to commit removal request for obituary {subject_id}: {e}")
        raise PersistenceError() from e

    try:
        await rate_limiter.record_hit(requester_ip, rate_store)
    except RedisError as e:
        logger.error(f"Failed to record rate limit hit: {e}")

    await notification_service.send_verification_email(record, token)
    await notification_service.notify_admin_of_request(record)

    logger.info(
        f"Removal request {record.id} submitted for obituary {subject_id} "
        f"by {mask_email(record.requester_email)} (pending verification)"
    )
    return RemovalResult(success=True, message=SUBMITTED_MESSAGE)

"""Verification token redemption: the only way a public request takes effect."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from optout.schemas.removal import RemovalResult
from optout.services import (
    ledger_service,
    notification_service,
    obituary_service,
    token_service,
)
from optout.services.exceptions import (
    ExpiredTokenError,
    InvalidTokenError,
    PersistenceError,
)
from optout.utils import clock

logger = logging.getLogger(__name__)

VERIFIED_MESSAGE = (
    "Your removal request has been verified. The obituary has been removed "
    "from public display. Thank you."
)


async def verify_request(db: AsyncSession, token: str | None) -> RemovalResult:
    """
    Redeem a verification token.

    On success the record becomes verified-suppressed, its token is cleared
    and the obituary is hidden. An expired token leaves the record exactly
    as it was; the requester has to submit again.

    Raises:
        InvalidTokenError: token unknown or already redeemed
        ExpiredTokenError: token older than the configured TTL
        PersistenceError: the transition could not be committed
    """
    token = (token or "").strip()
    if not token:
        raise InvalidTokenError()

    record = await ledger_service.find_by_active_token(db, token)
    if record is None:
        logger.info(f"Verification attempted with unknown or used token {token_service.token_prefix(token)}")
        raise InvalidTokenError()

    now = clock.now()
    if token_service.is_expired(record, now):
        logger.info(
            f"Verification token {token_service.token_prefix(token)} for record "
            f"{record.id} expired (age {token_service.token_age(record, now)})"
        )
        raise ExpiredTokenError()

    verified = await ledger_service.mark_verified_and_suppressed(db, record.id, token, now)
    if verified is None:
        # Lost the race to a concurrent redemption
        logger.info(f"Verification token {token_service.token_prefix(token)} already redeemed")
        raise InvalidTokenError()

    await obituary_service.apply_suppression(db, verified.obituary_id, now, verified.reason)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to commit verification of record {record.id}: {e}")
        raise PersistenceError() from e

    await notification_service.notify_admin_of_verification(verified)

    logger.info(
        f"Removal request verified and obituary {verified.obituary_id} suppressed "
        f"(token: {token_service.token_prefix(token)})"
    )
    return RemovalResult(success=True, message=VERIFIED_MESSAGE)

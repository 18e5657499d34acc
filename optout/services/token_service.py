"""Verification token issuing and expiry checks."""

import secrets
from datetime import datetime, timedelta

from optout.config import settings
from optout.models.suppression import SuppressionRecord
from optout.utils import clock

# 32 random bytes → 43 url-safe characters, 256 bits of entropy
TOKEN_BYTES = 32


def generate_token() -> str:
    """Generate an opaque, url-safe verification token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def token_issued_at(record: SuppressionRecord) -> datetime:
    """
    Instant the record's token was issued.

    Rows written before `token_created_at` existed fall back to `created_at`.
    """
    issued = record.token_created_at or record.created_at
    return clock.ensure_utc(issued)


def token_age(record: SuppressionRecord, now: datetime | None = None) -> timedelta:
    """Age of the record's token relative to `now` (default: current instant)."""
    current = now or clock.now()
    return current - token_issued_at(record)


def is_expired(record: SuppressionRecord, now: datetime | None = None) -> bool:
    """True once the token is older than the configured TTL."""
    ttl = timedelta(seconds=settings.VERIFICATION_TOKEN_TTL_SECONDS)
    return token_age(record, now) > ttl


def token_prefix(token: str) -> str:
    """Loggable prefix of a token; the full value never goes to the logs."""
    return f"{token[:8]}..."

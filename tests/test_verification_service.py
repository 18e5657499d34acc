"""Tests for verification token redemption."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from optout.models.suppression import SuppressionRecord, SuppressionState
from optout.services import ledger_service
from optout.services.exceptions import ExpiredTokenError, InvalidTokenError
from optout.services.intake_service import submit_removal_request
from optout.services.verification_service import verify_request
from optout.utils import clock


async def _pending_record(db: AsyncSession, obituary) -> SuppressionRecord:
    await submit_removal_request(
        db,
        obituary_id=obituary.id,
        name="Mary Doe",
        email="mary.doe@example.com",
        relationship="Daughter",
        requester_ip="203.0.113.7",
    )
    return (
        await db.execute(
            select(SuppressionRecord).where(SuppressionRecord.obituary_id == obituary.id)
        )
    ).scalar_one()


class TestVerifyRequest:
    async def test_valid_token_suppresses(self, db: AsyncSession, obituary):
        record = await _pending_record(db, obituary)
        token = record.verification_token

        result = await verify_request(db, token)

        assert result.success is True
        assert "removed from public display" in result.message

        await db.refresh(record)
        assert record.verification_token is None
        assert record.verified_at is not None
        assert record.suppressed_at is not None
        assert record.do_not_republish is True
        assert record.state == SuppressionState.VERIFIED_SUPPRESSED

        await db.refresh(obituary)
        assert obituary.suppressed_at is not None
        assert obituary.suppressed_reason == "family_request"

    async def test_blocks_fingerprint(self, db: AsyncSession, obituary):
        record = await _pending_record(db, obituary)
        assert await ledger_service.is_blocked(db, obituary.content_fingerprint) is False

        await verify_request(db, record.verification_token)

        assert await ledger_service.is_blocked(db, obituary.content_fingerprint) is True

    async def test_notifies_admin_once(self, db: AsyncSession, obituary, mock_notifier):
        record = await _pending_record(db, obituary)
        sent_before = mock_notifier.send.await_count

        await verify_request(db, record.verification_token)

        assert mock_notifier.send.await_count == sent_before + 1
        assert "Removal Verified" in mock_notifier.send.await_args.args[1]

    async def test_unknown_token(self, db: AsyncSession):
        with pytest.raises(InvalidTokenError):
            await verify_request(db, "no-such-token")

    async def test_empty_token(self, db: AsyncSession):
        with pytest.raises(InvalidTokenError):
            await verify_request(db, "   ")

    async def test_second_redemption_is_invalid(self, db: AsyncSession, obituary, mock_notifier):
        record = await _pending_record(db, obituary)
        token = record.verification_token
        await verify_request(db, token)
        sent_after_first = mock_notifier.send.await_count

        with pytest.raises(InvalidTokenError) as exc_info:
            await verify_request(db, token)

        # Same error and message as a token that never existed
        assert exc_info.value.message == InvalidTokenError().message
        assert mock_notifier.send.await_count == sent_after_first

    async def test_expired_token_leaves_record_pending(self, db: AsyncSession, obituary):
        record = await _pending_record(db, obituary)
        token = record.verification_token
        later = clock.ensure_utc(record.token_created_at) + timedelta(seconds=172801)

        with patch("optout.utils.clock.now", return_value=later):
            with pytest.raises(ExpiredTokenError):
                await verify_request(db, token)

        await db.refresh(record)
        assert record.verification_token == token
        assert record.verified_at is None
        assert record.suppressed_at is None
        assert record.do_not_republish is False

        await db.refresh(obituary)
        assert obituary.suppressed_at is None

    async def test_token_valid_just_inside_ttl(self, db: AsyncSession, obituary):
        record = await _pending_record(db, obituary)
        later = clock.ensure_utc(record.token_created_at) + timedelta(seconds=172800)

        with patch("optout.utils.clock.now", return_value=later):
            result = await verify_request(db, record.verification_token)

        assert result.success is True

    async def test_legacy_row_falls_back_to_created_at(self, db: AsyncSession, obituary):
        record = await _pending_record(db, obituary)
        record.token_created_at = None
        await db.commit()
        later = clock.ensure_utc(record.created_at) + timedelta(hours=49)

        with patch("optout.utils.clock.now", return_value=later):
            with pytest.raises(ExpiredTokenError):
                await verify_request(db, record.verification_token)

    async def test_lost_race_reports_invalid_token(self, db: AsyncSession, obituary, mock_notifier):
        record = await _pending_record(db, obituary)
        token = record.verification_token

        # Another session redeems the token between our lookup and our update
        winner = await ledger_service.mark_verified_and_suppressed(db, record.id, token)
        assert winner is not None
        sent_before = mock_notifier.send.await_count

        with patch(
            "optout.services.verification_service.ledger_service.find_by_active_token",
            AsyncMock(return_value=record),
        ):
            with pytest.raises(InvalidTokenError):
                await verify_request(db, token)

        assert mock_notifier.send.await_count == sent_before

    async def test_notification_failure_does_not_undo_verification(
        self, db: AsyncSession, obituary, mock_notifier
    ):
        record = await _pending_record(db, obituary)
        mock_notifier.send = AsyncMock(side_effect=RuntimeError("SES down"))

        result = await verify_request(db, record.verification_token)

        assert result.success is True
        await db.refresh(record)
        assert record.do_not_republish is True

"""Tests for operator suppression, unsuppression and review marking."""

from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from optout.models.suppression import SuppressionRecord, SuppressionState
from optout.services import admin_service, ledger_service
from optout.services.exceptions import NotFoundError
from optout.services.intake_service import submit_removal_request
from optout.services.verification_service import verify_request


async def _get(db: AsyncSession, suppression_id) -> SuppressionRecord:
    return await ledger_service.get_suppression(db, suppression_id)


class TestCoerceReason:
    def test_known_reason_kept(self):
        assert admin_service.coerce_reason("legal_notice") == "legal_notice"
        assert admin_service.coerce_reason("family_request") == "family_request"

    def test_unknown_reason_coerced(self):
        assert admin_service.coerce_reason("because") == "admin_action"

    def test_none_coerced(self):
        assert admin_service.coerce_reason(None) == "admin_action"


class TestSuppress:
    async def test_authenticated_legal_notice_auto_reviewed(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(
            db, obituary.id, reason="legal_notice", acting_user="operator"
        )

        record = await _get(db, suppression_id)
        assert record.verified_at is not None
        assert record.reviewed_by == "operator"
        assert record.reviewed_at is not None
        assert record.suppressed_at is not None
        assert record.do_not_republish is True
        assert record.verification_token is None
        assert record.state == SuppressionState.ADMIN_SUPPRESSED

        pending = await ledger_service.list_pending_for_review(db)
        assert suppression_id not in [r.id for r in pending]

    async def test_unauthenticated_legal_notice_queued(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(
            db, obituary.id, reason="legal_notice", acting_user=None
        )

        record = await _get(db, suppression_id)
        assert record.verified_at is None
        assert record.reviewed_at is None
        assert record.reviewed_by is None

        await db.refresh(obituary)
        assert obituary.suppressed_at is not None
        assert obituary.suppressed_reason == "legal_notice"

        pending = await ledger_service.list_pending_for_review(db)
        assert suppression_id in [r.id for r in pending]

    async def test_public_reason_by_operator_not_auto_reviewed(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(
            db, obituary.id, reason="family_request", acting_user="operator"
        )

        record = await _get(db, suppression_id)
        assert record.suppressed_at is not None
        assert record.reviewed_at is None
        assert record.verified_at is None

    async def test_unknown_reason_recorded_as_admin_action(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(
            db, obituary.id, reason="spam", acting_user="operator"
        )

        record = await _get(db, suppression_id)
        assert record.reason == "admin_action"
        assert record.reviewed_by == "operator"

    async def test_records_requester_and_notes(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(
            db,
            obituary.id,
            reason="privacy",
            requester={"name": " John Smith ", "email": "john@example.com", "relationship": "Son"},
            notes="Phoned in",
            acting_user="operator",
        )

        record = await _get(db, suppression_id)
        assert record.requester_name == "John Smith"
        assert record.requester_email == "john@example.com"
        assert record.requester_relationship == "Son"
        assert record.notes == "Phoned in"
        assert record.subject_name == obituary.name

    async def test_blocks_fingerprint_immediately(self, db: AsyncSession, obituary):
        await admin_service.suppress(db, obituary.id, acting_user="operator")
        assert await ledger_service.is_blocked(db, obituary.content_fingerprint) is True

    async def test_unknown_obituary(self, db: AsyncSession):
        with pytest.raises(NotFoundError):
            await admin_service.suppress(db, uuid4(), acting_user="operator")

    async def test_sends_no_notifications(self, db: AsyncSession, obituary, mock_notifier):
        await admin_service.suppress(db, obituary.id, acting_user="operator")
        mock_notifier.send.assert_not_awaited()


class TestUnsuppress:
    async def test_clears_subject_and_blocklist(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(
            db, obituary.id, reason="privacy", acting_user="operator"
        )
        record = await _get(db, suppression_id)
        suppressed_at = record.suppressed_at
        verified_at = record.verified_at

        cleared = await admin_service.unsuppress(db, obituary.id, acting_user="operator")

        assert cleared == 1
        await db.refresh(obituary)
        assert obituary.suppressed_at is None
        assert obituary.suppressed_reason is None
        assert await ledger_service.is_blocked(db, obituary.content_fingerprint) is False

        # History is retained
        record = await _get(db, suppression_id)
        assert record.do_not_republish is False
        assert record.suppressed_at == suppressed_at
        assert record.verified_at == verified_at
        assert record.state == SuppressionState.UNSUPPRESSED
        assert "Unsuppressed by admin" in record.notes

    async def test_clears_verified_public_request(self, db: AsyncSession, obituary):
        await submit_removal_request(
            db,
            obituary_id=obituary.id,
            name="Mary Doe",
            email="mary.doe@example.com",
            requester_ip="203.0.113.7",
        )
        record = (await db.execute(select(SuppressionRecord))).scalar_one()
        await verify_request(db, record.verification_token)
        assert await ledger_service.is_blocked(db, obituary.content_fingerprint) is True

        await admin_service.unsuppress(db, obituary.id, notes="Family changed their mind")

        assert await ledger_service.is_blocked(db, obituary.content_fingerprint) is False
        rows = (await db.execute(select(SuppressionRecord))).scalars().all()
        assert len(rows) == 1
        assert rows[0].verified_at is not None
        assert rows[0].suppressed_at is not None
        assert rows[0].notes.endswith("Family changed their mind")

    async def test_clears_every_record_for_obituary(self, db: AsyncSession, obituary, make_obituary):
        other = await make_obituary()
        await admin_service.suppress(db, obituary.id, reason="privacy", acting_user="operator")
        await admin_service.suppress(db, obituary.id, reason="legal_notice", acting_user="operator")
        await admin_service.suppress(db, other.id, reason="privacy", acting_user="operator")

        cleared = await admin_service.unsuppress(db, obituary.id)

        assert cleared == 2
        assert await ledger_service.is_blocked(db, other.content_fingerprint) is True

    async def test_appends_to_existing_notes(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(
            db, obituary.id, notes="Court order 123", acting_user="operator"
        )

        await admin_service.unsuppress(db, obituary.id, notes="Order lifted")

        record = await _get(db, suppression_id)
        assert record.notes == "Court order 123\nOrder lifted"


class TestMarkReviewed:
    async def test_stamps_reviewer(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(db, obituary.id, reason="legal_notice")

        record = await admin_service.mark_reviewed(db, suppression_id, "operator")

        assert record.reviewed_by == "operator"
        assert record.reviewed_at is not None
        pending = await ledger_service.list_pending_for_review(db)
        assert suppression_id not in [r.id for r in pending]

    async def test_idempotent(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(db, obituary.id, reason="legal_notice")

        await admin_service.mark_reviewed(db, suppression_id, "alice")
        record = await admin_service.mark_reviewed(db, suppression_id, "bob")

        assert record.reviewed_by == "bob"

    async def test_works_on_unsuppressed_record(self, db: AsyncSession, obituary):
        suppression_id = await admin_service.suppress(db, obituary.id, reason="privacy")
        await admin_service.unsuppress(db, obituary.id)

        record = await admin_service.mark_reviewed(db, suppression_id, "operator")
        assert record.reviewed_at is not None

    async def test_unknown_record(self, db: AsyncSession):
        with pytest.raises(NotFoundError):
            await admin_service.mark_reviewed(db, uuid4(), "operator")


class TestUnsuppressMissingSubject:
    async def test_unknown_obituary(self, db: AsyncSession):
        with pytest.raises(NotFoundError):
            await admin_service.unsuppress(db, uuid4())

    async def test_deleted_obituary_with_ledger_rows(self, db: AsyncSession, obituary):
        obituary_id = obituary.id
        fingerprint = obituary.content_fingerprint
        await admin_service.suppress(db, obituary_id, reason="privacy", acting_user="operator")
        await db.delete(obituary)
        await db.flush()

        cleared = await admin_service.unsuppress(db, obituary_id)

        assert cleared == 1
        assert await ledger_service.is_blocked(db, fingerprint) is False

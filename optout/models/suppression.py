"""Suppression ledger model: audit log of every removal request and action."""

import enum
import uuid
from datetime import date, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Date, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from optout.database import Base


class SuppressionReason(str, enum.Enum):
    """Allowed suppression reasons."""

    FAMILY_REQUEST = "family_request"
    FUNERAL_HOME_REQUEST = "funeral_home_request"
    ADMIN_ACTION = "admin_action"
    LEGAL_NOTICE = "legal_notice"
    PRIVACY = "privacy"


# Reasons a member of the public can file (counted by the duplicate guard)
PUBLIC_REASONS = (
    SuppressionReason.FAMILY_REQUEST.value,
    SuppressionReason.FUNERAL_HOME_REQUEST.value,
)

# Reasons eligible for auto-verification on the admin path
INSTANT_SUPPRESS_REASONS = (
    SuppressionReason.ADMIN_ACTION.value,
    SuppressionReason.LEGAL_NOTICE.value,
    SuppressionReason.PRIVACY.value,
)


class SuppressionState(str, enum.Enum):
    """Derived lifecycle state of a ledger row."""

    PENDING = "pending"
    VERIFIED_SUPPRESSED = "verified_suppressed"
    ADMIN_SUPPRESSED = "admin_suppressed"
    UNSUPPRESSED = "unsuppressed"


class SuppressionRecord(Base):
    """
    One row per removal request or admin suppression action.

    Rows are never deleted. The subject snapshot (`subject_name`,
    `date_of_death`, `content_fingerprint`) is copied at write time so the
    audit trail and the blocklist survive deletion or re-ingestion of the
    obituary itself, which is why `obituary_id` carries no foreign key.
    """

    __tablename__ = "suppressions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Subject reference (nullable for legacy rows)
    obituary_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    content_fingerprint: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
    )

    # Subject snapshot
    subject_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    date_of_death: Mapped[date | None] = mapped_column(Date, nullable=True)

    reason: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=SuppressionReason.FAMILY_REQUEST.value,
    )

    # Requester
    requester_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    requester_email: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    requester_relationship: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )
    requester_ip: Mapped[str] = mapped_column(String(45), nullable=False, default="")

    # Verification (token is non-null only while pending)
    verification_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    token_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    suppressed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Operator review
    reviewed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    do_not_republish: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_suppressions_obituary_id", "obituary_id"),
        Index("ix_suppressions_content_fingerprint", "content_fingerprint"),
        Index("ix_suppressions_verification_token", "verification_token", unique=True),
        Index("ix_suppressions_suppressed_at", "suppressed_at"),
        Index("ix_suppressions_requester_ip", "requester_ip"),
        Index("ix_suppressions_created_at", "created_at"),
    )

    @property
    def state(self) -> SuppressionState:
        if self.suppressed_at is None:
            return SuppressionState.PENDING
        if not self.do_not_republish:
            return SuppressionState.UNSUPPRESSED
        if self.reason in PUBLIC_REASONS and self.verified_at is not None:
            return SuppressionState.VERIFIED_SUPPRESSED
        return SuppressionState.ADMIN_SUPPRESSED

    def __repr__(self) -> str:
        return (
            f"<SuppressionRecord(id={self.id}, obituary_id={self.obituary_id}, "
            f"reason={self.reason}, state={self.state.value})>"
        )

"""Obituary model: the listing a removal request concerns."""

import uuid
from datetime import date, datetime
from uuid import uuid4

from sqlalchemy import Date, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from optout.database import Base


class Obituary(Base):
    """
    Represents a republished obituary listing.

    Only the columns the suppression workflow reads or writes are mapped.
    `suppressed_at` / `suppressed_reason` are a projection of the
    suppression ledger and are written only by the ledger services.
    """

    __tablename__ = "obituaries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    date_of_death: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Stable hash of the source content (see optout.utils.fingerprint)
    content_fingerprint: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
        index=True,
    )

    # Visibility projection
    suppressed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    suppressed_reason: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def is_suppressed(self) -> bool:
        return self.suppressed_at is not None

    def __repr__(self) -> str:
        return f"<Obituary(id={self.id}, name={self.name}, suppressed={self.is_suppressed})>"

"""Removal request and suppression Pydantic schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from optout.models.suppression import SuppressionReason, SuppressionState


class RemovalRequestCreate(BaseModel):
    """Public removal request. Fields are validated by the intake service."""

    obituary_id: str = Field(..., description="Obituary the request concerns")
    name: str = Field(default="", max_length=200, description="Requester name")
    email: str = Field(
        default="",
        max_length=200,
        description="Requester email, receives the verification link",
    )
    relationship: str = Field(default="", max_length=100, description="Relationship to the deceased")
    notes: str = Field(default="", max_length=5000, description="Additional details")
    reason: str = Field(
        default=SuppressionReason.FAMILY_REQUEST.value,
        description="family_request or funeral_home_request",
    )


class RemovalResult(BaseModel):
    """Outcome of a public submission or verification."""

    success: bool
    message: str


class RequesterInfo(BaseModel):
    name: str = Field(default="", max_length=200)
    email: str = Field(default="", max_length=200)
    relationship: str = Field(default="", max_length=100)


class SuppressRequest(BaseModel):
    """Operator suppression. Unknown reasons are recorded as admin_action."""

    reason: str = Field(default=SuppressionReason.ADMIN_ACTION.value)
    requester: RequesterInfo | None = None
    notes: str = Field(default="", max_length=5000)


class SuppressResponse(BaseModel):
    success: bool = True
    suppression_id: UUID


class UnsuppressRequest(BaseModel):
    notes: str = Field(default="", max_length=5000)


class UnsuppressResponse(BaseModel):
    success: bool = True
    obituary_id: UUID
    records_cleared: int


class SuppressionItem(BaseModel):
    """Ledger row as shown to operators. The verification token is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    obituary_id: UUID | None
    content_fingerprint: str
    subject_name: str
    date_of_death: date | None
    reason: str
    state: SuppressionState
    requester_name: str
    requester_email: str
    requester_relationship: str
    token_created_at: datetime | None
    verified_at: datetime | None
    suppressed_at: datetime | None
    reviewed_by: str | None
    reviewed_at: datetime | None
    do_not_republish: bool
    notes: str
    created_at: datetime


class SuppressionListResponse(BaseModel):
    """Paginated audit log."""

    items: list[SuppressionItem]
    total: int
    page: int
    page_size: int
    total_pages: int


class BlocklistCheckResponse(BaseModel):
    fingerprint: str
    blocked: bool


class BlocklistLookupRequest(BaseModel):
    """Listing identity as scraped; the service derives the fingerprint."""

    name: str = Field(..., max_length=200)
    date_of_death: date | None = None
    funeral_home: str = Field(default="", max_length=200)
    city: str = Field(default="", max_length=100)

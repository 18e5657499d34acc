"""Message composition for requester and administrator notifications."""

import logging
from datetime import date

from optout.config import settings
from optout.models.suppression import SuppressionRecord
from optout.services.notifier import dispatch_notification, notifier

logger = logging.getLogger(__name__)


def build_verification_url(token: str) -> str:
    return f"{settings.APP_BASE_URL}/removals/verify/{token}"


def _ttl_hours() -> int:
    return settings.VERIFICATION_TOKEN_TTL_SECONDS // 3600


def _format_date(value: date | None) -> str:
    return value.isoformat() if value else "unknown"


async def send_verification_email(record: SuppressionRecord, token: str) -> bool:
    """Email the requester the link that confirms their removal request."""
    subject = f"Verify your removal request for {record.subject_name} - {settings.SITE_NAME}"
    body = (
        f"Dear {record.requester_name},\n\n"
        f"We received your request to remove the obituary listing for {record.subject_name}.\n\n"
        f"To complete the removal, please verify your request by opening the link below:\n"
        f"{build_verification_url(token)}\n\n"
        f"This link expires in {_ttl_hours()} hours. Once verified, the listing will be "
        f"removed from public display.\n\n"
        f"If you did not submit this request, please disregard this email. "
        f"No action will be taken.\n\n"
        f"Sincerely,\n"
        f"{settings.SITE_NAME}\n"
    )
    return await dispatch_notification(notifier, record.requester_email, subject, body)


async def notify_admin_of_request(record: SuppressionRecord) -> bool:
    """Alert the administrator that a public removal request is awaiting verification."""
    subject = f"[{settings.SITE_NAME}] Removal Request: {record.subject_name}"
    body = (
        f"A removal request has been submitted.\n\n"
        f"Obituary: {record.subject_name} (ID: {record.obituary_id})\n"
        f"Date of Death: {_format_date(record.date_of_death)}\n"
        f"Requester: {record.requester_name}\n"
        f"Email: {record.requester_email}\n"
        f"Relationship: {record.requester_relationship}\n"
        f"Notes: {record.notes}\n\n"
        f"Status: PENDING VERIFICATION (the obituary stays visible until the "
        f"requester verifies via email).\n\n"
        f"Review queue: {settings.APP_BASE_URL}/api/admin/removals/pending\n"
    )
    return await dispatch_notification(notifier, settings.ADMIN_EMAIL, subject, body)


async def notify_admin_of_verification(record: SuppressionRecord) -> bool:
    """Alert the administrator that a removal request was verified and applied."""
    subject = f"[{settings.SITE_NAME}] Removal Verified: {record.subject_name}"
    body = (
        f"A removal request has been verified and the obituary hidden.\n\n"
        f"Obituary: {record.subject_name} (ID: {record.obituary_id})\n"
        f"Requester: {record.requester_name} <{record.requester_email}>\n"
        f"Reason: {record.reason}\n"
        f"Suppression ID: {record.id}\n"
    )
    return await dispatch_notification(notifier, settings.ADMIN_EMAIL, subject, body)

"""Outbound email transport (AWS SES) for removal workflow notifications."""

import asyncio
import logging
from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from optout.config import settings

logger = logging.getLogger(__name__)


class NotifierError(Exception):
    """Raised when a notification could not be handed to SES."""

    pass


class Notifier:
    """Async wrapper around SES SendEmail for plain-text notifications."""

    def __init__(self):
        self.session = aioboto3.Session(
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.AWS_REGION,
        )
        self.source = settings.NOTIFY_FROM_EMAIL
        self.configuration_set = settings.SES_CONFIGURATION_SET

    @retry(
        retry=retry_if_exception_type((ClientError,)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        reraise=True,
    )
    async def _send(self, to: str, subject: str, body: str) -> str:
        params: dict[str, Any] = {
            "Source": self.source,
            "Destination": {"ToAddresses": [to]},
            "Message": {
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Text": {"Data": body, "Charset": "UTF-8"}},
            },
        }
        if self.configuration_set:
            params["ConfigurationSetName"] = self.configuration_set

        async with self.session.client("ses") as ses:
            response = await ses.send_email(**params)
        return response["MessageId"]

    async def send(self, to: str, subject: str, body: str) -> str:
        """
        Send a plain-text email.

        Returns:
            SES MessageId

        Raises:
            NotifierError: if SES rejects the message after retries
        """
        try:
            message_id = await self._send(to, subject, body)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))
            raise NotifierError(f"SES error ({error_code}): {error_message}") from e
        except BotoCoreError as e:
            raise NotifierError(f"SES transport error: {e}") from e

        logger.info(f"Notification sent. SES MessageId: {message_id}")
        return message_id


async def dispatch_notification(
    notifier: Notifier,
    to: str,
    subject: str,
    body: str,
    timeout: float | None = None,
) -> bool:
    """
    Best-effort send bounded by NOTIFY_TIMEOUT_SECONDS.

    Never raises: the ledger row, not the email, is the record of truth, so a
    failed or slow send is logged and the caller carries on.

    Returns:
        True if the message was accepted by the transport
    """
    timeout = timeout if timeout is not None else settings.NOTIFY_TIMEOUT_SECONDS
    try:
        await asyncio.wait_for(notifier.send(to, subject, body), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        logger.error(f"Notification '{subject}' timed out after {timeout}s")
    except Exception as e:
        logger.error(f"Notification '{subject}' failed: {e}")
    return False


# Global notifier instance
notifier = Notifier()

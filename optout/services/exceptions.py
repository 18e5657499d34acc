"""Domain errors raised by the suppression workflow."""

from typing import Any

from fastapi import status


class SuppressionError(Exception):
    """
    Base exception for the removal workflow.

    `message` is safe to show to the requester; internal detail (counts,
    database errors) is logged at the raise site and never placed here.
    """

    code = "SUPPRESSION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The request could not be completed."

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(SuppressionError):
    """Malformed or unacceptable input. Nothing was persisted."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message, details={"field": field})


class RateLimitError(SuppressionError):
    code = "RATE_LIMITED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."


class DuplicateError(SuppressionError):
    code = "REQUEST_ALREADY_PENDING"
    status_code = status.HTTP_409_CONFLICT
    default_message = (
        "A removal request for this obituary is already pending verification. "
        "Please check your email."
    )


class InvalidTokenError(SuppressionError):
    """Token unknown or already redeemed. The two cases are deliberately merged."""

    code = "INVALID_TOKEN"
    default_message = "Invalid or already-used verification token."


class ExpiredTokenError(SuppressionError):
    code = "EXPIRED_TOKEN"
    status_code = status.HTTP_410_GONE
    default_message = (
        "This verification link has expired. Please submit a new removal request."
    )


class NotFoundError(SuppressionError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Record not found."


class PersistenceError(SuppressionError):
    code = "PERSISTENCE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An error occurred. Please try again."


class UnavailableError(SuppressionError):
    """A backing service (the rate limit store) could not be reached."""

    code = "SERVICE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "An error occurred. Please try again."


class IssueError(SuppressionError):
    """Freshly issued token collided with an active one. Retried internally."""

    code = "TOKEN_COLLISION"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

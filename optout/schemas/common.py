"""Common Pydantic schemas used across the application."""

from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = False
    message: str
    error: ErrorDetail


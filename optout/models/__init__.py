"""SQLAlchemy models."""

from optout.models.obituary import Obituary
from optout.models.suppression import (
    SuppressionReason,
    SuppressionRecord,
    SuppressionState,
)

__all__ = [
    "Obituary",
    "SuppressionRecord",
    "SuppressionReason",
    "SuppressionState",
]

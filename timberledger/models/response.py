"""Response envelope shared by every endpoint."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel):
    """Envelope returned by every endpoint.

    Attributes:
        success: True for 1xx-3xx, False for 4xx/5xx
        message: Human-readable outcome
        data: Payload, omitted when there is none
        timestamp: Response creation time (ISO8601, UTC)
    """

    success: bool
    message: str
    data: Optional[Any] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def for_status(cls, status_code: int, message: str, data: Any = None) -> "ApiResponse":
        """Build an envelope whose success flag follows the status code."""
        return cls(success=status_code < 400, message=message, data=data)

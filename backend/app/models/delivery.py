"""
Pydantic models for the send-email pipeline.

Models:
  UploadedFile        : one decoded file part (name + readable binary stream)
  SubmissionRequest   : decoded, validated send request
  DeliveryOutcome     : result of delivering to one recipient
  DeliverySummary     : aggregate of all outcomes for one request
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Transport(str, Enum):
    """Which transport delivered (or last attempted) a message."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


class OverallState(str, Enum):
    ALL_OK = "all_ok"
    PARTIAL = "partial"
    ALL_FAILED = "all_failed"


class UploadedFile(BaseModel):
    """
    A file part received by the endpoint.

    ``stream`` is any readable binary file object (FastAPI hands us the
    UploadFile's spooled temporary file). The archive builder reads it in
    chunks, so the payload is never required to sit fully in memory.
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    name: str
    stream: Any
    size: Optional[int] = None


class SubmissionRequest(BaseModel):
    """A decoded send request. Immutable once constructed."""

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    recipients: tuple[str, ...] = Field(min_length=1)
    message: str = ""
    files: tuple[UploadedFile, ...] = Field(min_length=1)


class DeliveryOutcome(BaseModel):
    """Outcome for one recipient. ``succeeded`` is False only if both transports failed."""

    recipient: str
    succeeded: bool
    transport: Transport
    error: Optional[str] = None
    message_id: Optional[str] = None

    def to_result(self) -> dict:
        """Serialize as an entry of the endpoint's ``results`` array."""
        result: dict = {
            "email": self.recipient,
            "success": self.succeeded,
            "transport": self.transport.value,
        }
        if self.message_id:
            result["messageId"] = self.message_id
        if self.error:
            result["error"] = self.error
        return result


class DeliverySummary(BaseModel):
    """Derived view over a request's outcomes; never stored."""

    overall_state: OverallState
    succeeded_count: int
    total_count: int
    outcomes: list[DeliveryOutcome]
    message: str

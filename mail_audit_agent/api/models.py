"""API request/response models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChannelAccount(BaseModel):
    """Sender or conversation reference on a chat activity."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None


class ActivityRequest(BaseModel):
    """Incoming chat activity (subset of the Bot Framework schema)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = Field(default="message", description="Activity type")
    id: Optional[str] = None
    text: Optional[str] = Field(default=None, description="User message text")
    from_: Optional[ChannelAccount] = Field(default=None, alias="from")
    conversation: Optional[ChannelAccount] = None


class ActivityReply(BaseModel):
    """Reply activity carrying one adaptive card."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = "message"
    reply_to_id: Optional[str] = Field(default=None, alias="replyToId")
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str
    version: str
    timestamp: datetime
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness response."""

    status: str
    timestamp: datetime
    email_auditor: bool


class DetailedHealthResponse(BaseModel):
    """Auditor state, readiness and recent metrics."""

    status: str
    version: str
    auditor_state: str
    mimecast: bool
    metrics: dict[str, Any] = Field(default_factory=dict)

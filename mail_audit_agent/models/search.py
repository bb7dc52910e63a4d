"""Search parameter, audit record and result models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class SearchStatus(str, Enum):
    """Disposition filter requested by the user."""

    BLOCKED = "blocked"
    HELD = "held"
    REJECTED = "rejected"
    ALL = "all"


class MessageRoute(str, Enum):
    """Dispositions the provider is known to report for stopped mail."""

    BLOCKED = "blocked"
    HELD = "held"
    REJECTED = "rejected"


DEFAULT_WINDOW_DAYS = 7
MAX_WINDOW_DAYS = 3650  # Ten years
NO_SUBJECT = "(No Subject)"
UNKNOWN_REASON = "Unknown"
UNKNOWN_STATUS = "unknown"


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class SearchParameters(BaseModel):
    """Provider-agnostic search intent extracted from a user query."""

    model_config = ConfigDict(frozen=True)

    status: SearchStatus
    sender: Optional[str] = None  # Exact address
    domain: Optional[str] = None  # Bare domain, no "@"
    window_days: int = Field(default=DEFAULT_WINDOW_DAYS, ge=1, le=MAX_WINDOW_DAYS)

    @model_validator(mode="after")
    def check_single_identifier(self) -> "SearchParameters":
        """Sender and domain filters are mutually exclusive."""
        if self.sender and self.domain:
            raise ValueError("sender and domain cannot both be set")
        return self


class EmailRecord(BaseModel):
    """A stopped message as reported by the audit provider."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    subject: str = NO_SUBJECT
    sender: str = ""
    recipient: str = ""
    status: str = UNKNOWN_STATUS  # Provider route, passed through verbatim
    reason: str = UNKNOWN_REASON
    occurred_at: datetime = Field(default_factory=utcnow)

    @property
    def is_known_status(self) -> bool:
        """Whether the provider route is one of blocked/held/rejected."""
        return self.status in {route.value for route in MessageRoute}


class SearchResult(BaseModel):
    """Outcome of one interpret + search cycle."""

    model_config = ConfigDict(frozen=True)

    query: str
    parameters: SearchParameters
    records: tuple[EmailRecord, ...] = ()
    elapsed_ms: int = Field(ge=0)
    completed_at: datetime = Field(default_factory=utcnow)

    @computed_field  # type: ignore[misc]
    @property
    def count(self) -> int:
        return len(self.records)

"""Data models for the mail audit agent."""

from .search import (
    EmailRecord,
    MessageRoute,
    SearchParameters,
    SearchResult,
    SearchStatus,
)

__all__ = [
    "EmailRecord",
    "MessageRoute",
    "SearchParameters",
    "SearchResult",
    "SearchStatus",
]

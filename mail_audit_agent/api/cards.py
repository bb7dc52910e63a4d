"""Adaptive Card rendering for search results."""

from typing import Any

from mail_audit_agent.models.search import NO_SUBJECT, EmailRecord, SearchResult

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"
CARD_VERSION = "1.4"
CARD_SCHEMA = "http://adaptivecards.io/schemas/adaptive-card.json"
MAX_RECORDS_SHOWN = 10


def _card(body: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "type": "AdaptiveCard",
        "version": CARD_VERSION,
        "$schema": CARD_SCHEMA,
        "body": body,
    }


def _text_block(text: str, **options: Any) -> dict[str, Any]:
    return {"type": "TextBlock", "text": text, **options}


def as_attachment(card: dict[str, Any]) -> dict[str, Any]:
    """Wrap a card for a chat message attachment."""
    return {"contentType": ADAPTIVE_CARD_CONTENT_TYPE, "content": card}


def _header(result: SearchResult) -> dict[str, Any]:
    found = result.count > 0
    return {
        "type": "Container",
        "style": "attention" if found else "good",
        "items": [
            _text_block(
                f"📧 Found {result.count} Email(s)" if found else "✅ No Emails Found",
                weight="bolder",
                size="large",
            ),
            _text_block(
                f'Query: "{result.query}" • {result.elapsed_ms}ms',
                size="small",
                isSubtle=True,
                wrap=True,
            ),
        ],
    }


def _record_section(record: EmailRecord) -> dict[str, Any]:
    return {
        "type": "Container",
        "separator": True,
        "items": [
            _text_block(record.subject or NO_SUBJECT, weight="bolder", wrap=True),
            {
                "type": "FactSet",
                "facts": [
                    {"title": "From:", "value": record.sender},
                    {"title": "To:", "value": record.recipient},
                    {"title": "Status:", "value": record.status.upper()},
                    {"title": "Reason:", "value": record.reason},
                    {"title": "Date:", "value": record.occurred_at.strftime("%Y-%m-%d %H:%M UTC")},
                ],
            },
        ],
    }


def build_results_card(result: SearchResult) -> dict[str, Any]:
    """
    Render a search result.

    Only the first ten records are listed; a note reports how many were
    left out.
    """
    body = [_header(result)]
    body.extend(_record_section(record) for record in result.records[:MAX_RECORDS_SHOWN])

    if result.count > MAX_RECORDS_SHOWN:
        body.append(
            _text_block(
                f"Showing {MAX_RECORDS_SHOWN} of {result.count} emails. Narrow the query to see the rest.",
                size="small",
                isSubtle=True,
                wrap=True,
            )
        )

    body.append(
        {
            "type": "Container",
            "items": [
                _text_block("Mail Audit Agent • Mimecast", size="small", color="dark", isSubtle=True),
            ],
        }
    )
    return _card(body)


def build_error_card(message: str) -> dict[str, Any]:
    """Render an error message."""
    return _card(
        [
            {
                "type": "Container",
                "style": "attention",
                "items": [
                    _text_block("⚠️ Error", weight="bolder", size="large"),
                    _text_block(message, wrap=True),
                ],
            }
        ]
    )


def build_welcome_card() -> dict[str, Any]:
    """Render usage help for an empty message."""
    return _card(
        [
            {
                "type": "Container",
                "style": "emphasis",
                "items": [
                    _text_block("📧 Mail Audit Agent", weight="bolder", size="extraLarge"),
                    _text_block(
                        "Query Mimecast email audit logs using natural language",
                        wrap=True,
                        isSubtle=True,
                    ),
                ],
            },
            {
                "type": "Container",
                "items": [
                    _text_block("Example Queries", weight="bolder", size="medium"),
                    _text_block(
                        '• "Show blocked emails from sender@example.com"\n'
                        '• "List held emails from last 7 days"\n'
                        '• "Check rejected emails from domain.com"',
                        wrap=True,
                    ),
                ],
            },
        ]
    )

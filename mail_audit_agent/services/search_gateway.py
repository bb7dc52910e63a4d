"""Mimecast message-finder search client."""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from mail_audit_agent.config.settings import MimecastConfig
from mail_audit_agent.models.search import (
    NO_SUBJECT,
    UNKNOWN_REASON,
    UNKNOWN_STATUS,
    EmailRecord,
    SearchParameters,
    SearchStatus,
    utcnow,
)
from mail_audit_agent.services.mimecast_auth import MimecastAuth
from mail_audit_agent.utils.logging import get_logger

logger = get_logger(__name__)

SEARCH_PATH = "/api/message-finder/search"
ACCOUNT_PATH = "/api/account/get-account"
MAX_PAGE_SIZE = 100
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


class GatewayError(Exception):
    """Mimecast search failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_search_request(
    params: SearchParameters,
    now: datetime,
    page_size: int = MAX_PAGE_SIZE,
) -> dict[str, Any]:
    """
    Build the message-finder request body.

    Domains are expressed as a sender pattern (``@example.com``); the route
    filter is omitted for "all". Only one page is ever requested.

    Args:
        params: Validated search parameters
        now: End of the search window (timezone aware)
        page_size: Results per page, capped at 100

    Returns:
        JSON-serializable request body

    Raises:
        GatewayError: If the window reaches outside the representable date range
    """
    try:
        start = now - timedelta(days=params.window_days)
    except OverflowError as e:
        raise GatewayError(f"Search window of {params.window_days} days is out of range") from e
    search_data: dict[str, Any] = {
        "start": start.strftime(TIMESTAMP_FORMAT),
        "end": now.strftime(TIMESTAMP_FORMAT),
        "advancedTrackAndTraceOptions": {},
    }

    if params.sender:
        search_data["searchBy"] = "sender"
        search_data["query"] = params.sender
    elif params.domain:
        search_data["searchBy"] = "sender"
        search_data["query"] = f"@{params.domain}"

    if params.status != SearchStatus.ALL:
        search_data["advancedTrackAndTraceOptions"]["route"] = params.status.value

    return {
        "meta": {"pagination": {"pageSize": min(page_size, MAX_PAGE_SIZE)}},
        "data": [search_data],
    }


def _parse_timestamp(value: Any) -> datetime:
    """Parse a provider timestamp, falling back to now."""
    if not value or not isinstance(value, str):
        return utcnow()
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        try:
            parsed = datetime.strptime(value, TIMESTAMP_FORMAT)
        except ValueError:
            logger.warning("Unparseable message timestamp", received=value)
            return utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)


def parse_message(message: dict[str, Any]) -> EmailRecord:
    """Map one provider message object onto an EmailRecord."""
    return EmailRecord(
        id=_text(message.get("id"), ""),
        subject=_text(message.get("subject"), NO_SUBJECT),
        sender=_text(message.get("from"), ""),
        recipient=_text(message.get("to"), ""),
        status=_text(message.get("route"), UNKNOWN_STATUS),
        reason=_text(message.get("detectionLevel"), UNKNOWN_REASON),
        occurred_at=_parse_timestamp(message.get("received")),
    )


def parse_search_response(payload: Any) -> list[EmailRecord]:
    """
    Normalize a message-finder response.

    An absent or empty ``data`` array yields an empty list. Provider order is
    preserved.

    Raises:
        GatewayError: If the payload shape is not recognized or the provider
            reported failures
    """
    if not isinstance(payload, dict):
        raise GatewayError("Malformed search response: expected a JSON object")

    failures = payload.get("fail") or []
    if failures:
        errors = [
            error.get("message") or error.get("code") or "unknown error"
            for failure in failures
            if isinstance(failure, dict)
            for error in failure.get("errors", [])
            if isinstance(error, dict)
        ]
        raise GatewayError(f"Mimecast rejected search: {'; '.join(errors) or failures}")

    messages = payload.get("data") or []
    if not isinstance(messages, list):
        raise GatewayError("Malformed search response: 'data' is not a list")

    records = []
    for index, message in enumerate(messages):
        if not isinstance(message, dict):
            raise GatewayError(f"Malformed search response: item {index} is not an object")
        records.append(parse_message(message))
    return records


class SearchGateway:
    """Signed access to the Mimecast message-finder API."""

    def __init__(self, client: httpx.AsyncClient, config: MimecastConfig) -> None:
        """
        Initialize search gateway.

        Args:
            client: Shared async HTTP client (base URL and timeout preconfigured)
            config: Mimecast credentials and limits
        """
        self.client = client
        self.config = config
        self.auth = MimecastAuth(
            app_id=config.app_id,
            app_key=config.app_key,
            access_key=config.access_key.get_secret_value(),
            secret_key=config.secret_key.get_secret_value(),
        )

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        response = await self.client.post(path, json=body, auth=self.auth)
        response.raise_for_status()
        return response

    async def search(self, params: SearchParameters) -> list[EmailRecord]:
        """
        Search for stopped messages matching the parameters.

        Args:
            params: Validated search parameters

        Returns:
            Normalized records in provider order

        Raises:
            GatewayError: If the call fails or the response is malformed
        """
        body = build_search_request(params, utcnow(), self.config.page_size)
        log_params = params.model_dump(mode="json")
        logger.info("Searching Mimecast messages", parameters=log_params)
        start_time = time.time()

        try:
            response = await self._post(SEARCH_PATH, body)
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Mimecast search rejected",
                parameters=log_params,
                status=e.response.status_code,
            )
            raise GatewayError(
                f"Mimecast search failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            logger.error("Mimecast search timeout", parameters=log_params, error=str(e))
            raise GatewayError("Mimecast search timed out") from e
        except httpx.HTTPError as e:
            logger.error("Mimecast search failed", parameters=log_params, error=str(e))
            raise GatewayError(f"Mimecast search failed: {e}") from e
        except ValueError as e:
            logger.error("Mimecast returned invalid JSON", parameters=log_params, error=str(e))
            raise GatewayError("Malformed search response: body is not JSON") from e

        try:
            records = parse_search_response(payload)
        except GatewayError as e:
            logger.error("Mimecast search response rejected", parameters=log_params, error=str(e))
            raise

        logger.info(
            "Mimecast search completed",
            parameters=log_params,
            result_count=len(records),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return records

    async def health_check(self) -> bool:
        """
        Check Mimecast reachability and credentials.

        Returns:
            True if the account endpoint answers successfully; never raises
        """
        try:
            await self._post(ACCOUNT_PATH, {"meta": {}, "data": []})
            return True
        except Exception as e:
            logger.warning("Mimecast health check failed", error_type=type(e).__name__, error=str(e))
            return False

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

"""Natural-language query interpretation via LLM function calling."""

import json
import time
from collections.abc import Mapping
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

from mail_audit_agent.config.settings import LLMConfig
from mail_audit_agent.models.search import (
    DEFAULT_WINDOW_DAYS,
    MAX_WINDOW_DAYS,
    SearchParameters,
    SearchStatus,
)
from mail_audit_agent.utils.logging import get_logger

logger = get_logger(__name__)

SEARCH_TOOL_NAME = "search_mimecast"

SEARCH_TOOL = {
    "type": "function",
    "function": {
        "name": SEARCH_TOOL_NAME,
        "description": (
            "Search Mimecast for blocked, held, or rejected emails. Use this tool "
            "to find emails that were stopped by Mimecast security."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "enum": [s.value for s in SearchStatus],
                    "description": "Email status to search for",
                },
                "sender": {
                    "type": "string",
                    "description": (
                        "Email address or domain to search for "
                        "(e.g., user@example.com or example.com)"
                    ),
                },
                "days": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_WINDOW_DAYS,
                    "description": f"Number of days to search back (default: {DEFAULT_WINDOW_DAYS})",
                },
            },
            "required": ["status"],
        },
    },
}

SYSTEM_PROMPT = (
    "You translate requests about stopped email into a single call to the "
    f"{SEARCH_TOOL_NAME} tool. If the request is not about finding blocked, "
    "held or rejected email, answer briefly in text instead of calling the tool."
)


class InterpretationError(Exception):
    """Query could not be turned into search parameters."""

    user_facing = False

    def __init__(self, message: str, query: str = "") -> None:
        super().__init__(message)
        self.query = query


class ModelServiceError(InterpretationError):
    """Language model call failed or returned unusable arguments."""

    pass


class EmptyModelResponseError(InterpretationError):
    """Language model returned nothing to work with."""

    pass


class IntentNotRecognizedError(InterpretationError):
    """Language model answered without invoking the search tool."""

    user_facing = True


def _coerce_days(value: Any) -> int:
    """Whole number of days between 1 and MAX_WINDOW_DAYS, or the default window."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_WINDOW_DAYS
    try:
        days = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_WINDOW_DAYS
    if days <= 0:
        return DEFAULT_WINDOW_DAYS
    return min(days, MAX_WINDOW_DAYS)


def _coerce_status(value: Any) -> SearchStatus:
    if isinstance(value, str):
        try:
            return SearchStatus(value.strip().lower())
        except ValueError:
            pass
    return SearchStatus.ALL


def validate_tool_arguments(arguments: Mapping[str, Any]) -> SearchParameters:
    """
    Normalize raw tool arguments into SearchParameters.

    - status: missing or unrecognized values fall back to "all"
    - days: missing, non-numeric or non-positive values fall back to 7;
      larger windows are capped at MAX_WINDOW_DAYS
    - sender: values containing "@" are addresses, anything else is a domain

    Args:
        arguments: Decoded tool-call arguments

    Returns:
        Validated search parameters
    """
    sender: Optional[str] = None
    domain: Optional[str] = None

    raw_sender = arguments.get("sender")
    if isinstance(raw_sender, str) and raw_sender.strip():
        identifier = raw_sender.strip()
        if "@" in identifier:
            sender = identifier
        else:
            domain = identifier

    return SearchParameters(
        status=_coerce_status(arguments.get("status")),
        sender=sender,
        domain=domain,
        window_days=_coerce_days(arguments.get("days")),
    )


def extract_tool_arguments(response: Any, query: str = "") -> dict[str, Any]:
    """
    Pull the search tool's arguments out of a chat completion.

    Raises:
        EmptyModelResponseError: No choices, or a message with no text and no tool call
        IntentNotRecognizedError: The model replied without calling the search tool
        ModelServiceError: Tool arguments are not a JSON object
    """
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise EmptyModelResponseError("No response from language model", query=query)

    message = choices[0].message
    tool_calls = getattr(message, "tool_calls", None) or []
    content = (getattr(message, "content", None) or "").strip()

    if not tool_calls:
        if not content:
            raise EmptyModelResponseError("Language model returned an empty message", query=query)
        raise IntentNotRecognizedError(
            "I couldn't work out which emails to search for. Please rephrase your query, "
            'for example "Show blocked emails from sender@example.com in the last 3 days".',
            query=query,
        )

    tool_call = next(
        (call for call in tool_calls if call.function.name == SEARCH_TOOL_NAME),
        None,
    )
    if tool_call is None:
        raise IntentNotRecognizedError(
            f"Language model did not use the {SEARCH_TOOL_NAME} tool. Please rephrase your query.",
            query=query,
        )

    try:
        arguments = json.loads(tool_call.function.arguments or "{}")
    except json.JSONDecodeError as e:
        raise ModelServiceError(f"Malformed tool arguments: {e}", query=query) from e

    if not isinstance(arguments, dict):
        raise ModelServiceError("Tool arguments are not a JSON object", query=query)

    return arguments


class QueryInterpreter:
    """Turns free text into validated search parameters using one LLM call."""

    def __init__(self, client: AsyncOpenAI, config: LLMConfig) -> None:
        """
        Initialize query interpreter.

        Args:
            client: Shared async OpenAI-compatible client
            config: Model name and token limits
        """
        self.client = client
        self.config = config

    async def interpret(self, raw_text: str) -> SearchParameters:
        """
        Interpret a natural-language query.

        Args:
            raw_text: The user's message

        Returns:
            Validated search parameters

        Raises:
            ModelServiceError: If the model call fails
            EmptyModelResponseError: If the model returns nothing usable
            IntentNotRecognizedError: If the model declines to call the search tool
        """
        logger.info("Interpreting query", query=raw_text, model=self.config.model)
        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                tools=[SEARCH_TOOL],
                tool_choice="auto",
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": raw_text},
                ],
            )
        except OpenAIError as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            logger.error(
                "Language model call failed",
                query=raw_text,
                duration_ms=duration_ms,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise ModelServiceError(f"Language model call failed: {e}", query=raw_text) from e

        duration_ms = round((time.time() - start_time) * 1000, 2)

        try:
            arguments = extract_tool_arguments(response, query=raw_text)
        except InterpretationError as e:
            logger.warning(
                "Query not interpreted",
                query=raw_text,
                duration_ms=duration_ms,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        params = validate_tool_arguments(arguments)
        logger.info(
            "Query interpreted",
            query=raw_text,
            duration_ms=duration_ms,
            parameters=params.model_dump(mode="json"),
        )
        return params

    async def aclose(self) -> None:
        """Close the underlying model client."""
        await self.client.close()

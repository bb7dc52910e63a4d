"""Pytest configuration and fixtures for all tests."""

import json
import os
from types import SimpleNamespace
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Set test environment variables before importing settings
os.environ["APP_ENV"] = "testing"
os.environ["LOG_FORMAT"] = "console"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["LLM_MODEL"] = "test-model"
os.environ["MIMECAST_BASE_URL"] = "https://test.mimecast.example.com"
os.environ["MIMECAST_APP_ID"] = "test-app-id"
os.environ["MIMECAST_APP_KEY"] = "test-app-key"
os.environ["MIMECAST_ACCESS_KEY"] = "test-access-key"
os.environ["MIMECAST_SECRET_KEY"] = "c2VjcmV0LWtleQ=="  # base64("secret-key")
os.environ["BOT_API_KEY"] = "test-bot-key"

MIMECAST_BASE_URL = os.environ["MIMECAST_BASE_URL"]


def make_tool_call(arguments: Any, name: str = "search_mimecast") -> SimpleNamespace:
    """Tool call shaped like the OpenAI SDK object."""
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return SimpleNamespace(
        id="call_1",
        type="function",
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def make_completion(
    content: Optional[str] = None,
    tool_calls: Optional[list] = None,
) -> SimpleNamespace:
    """Chat completion with a single choice."""
    message = SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message, finish_reason="stop")])


@pytest.fixture
def tool_completion() -> Callable[..., SimpleNamespace]:
    """Factory for completions that call the search tool."""

    def _build(arguments: Any, name: str = "search_mimecast") -> SimpleNamespace:
        return make_completion(tool_calls=[make_tool_call(arguments, name=name)])

    return _build


@pytest.fixture
def text_completion() -> Callable[[str], SimpleNamespace]:
    """Factory for plain-text completions."""

    def _build(content: str) -> SimpleNamespace:
        return make_completion(content=content)

    return _build


@pytest.fixture
def mock_openai_client() -> MagicMock:
    """AsyncOpenAI stand-in with an awaitable chat.completions.create."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def llm_config():
    from mail_audit_agent.config.settings import LLMConfig

    return LLMConfig()


@pytest.fixture
def mimecast_config():
    from mail_audit_agent.config.settings import MimecastConfig

    return MimecastConfig()


@pytest.fixture
def sample_message() -> dict[str, Any]:
    """One provider-shaped message object."""
    return {
        "id": "msg-001",
        "subject": "Invoice overdue",
        "from": "test@example.com",
        "to": "finance@corp.example",
        "route": "blocked",
        "detectionLevel": "relaxed",
        "received": "2026-10-16T09:30:00+0000",
    }


@pytest.fixture
def mimecast_transport() -> Callable[..., httpx.MockTransport]:
    """
    Factory for a Mimecast mock transport.

    The handler records every request in ``transport.requests`` and answers
    the search path with ``search_response`` and the account path with
    ``account_status``.
    """

    def _build(
        search_response: Any = None,
        search_status: int = 200,
        account_status: int = 200,
        error: Optional[Exception] = None,
    ) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if error is not None:
                raise error
            if request.url.path == "/api/account/get-account":
                return httpx.Response(account_status, json={"meta": {"status": account_status}, "data": []})
            if isinstance(search_response, (str, bytes)):
                return httpx.Response(search_status, content=search_response)
            return httpx.Response(search_status, json=search_response if search_response is not None else {"data": []})

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport

    return _build


@pytest.fixture
def make_gateway(mimecast_config):
    """Build a SearchGateway over a mock transport."""
    from mail_audit_agent.services.search_gateway import SearchGateway

    def _build(transport: httpx.MockTransport):
        client = httpx.AsyncClient(base_url=MIMECAST_BASE_URL, transport=transport)
        return SearchGateway(client, mimecast_config)

    return _build


@pytest.fixture
def completion() -> Callable[..., SimpleNamespace]:
    """Factory for arbitrary chat completions."""
    return make_completion


@pytest.fixture
def tool_call() -> Callable[..., SimpleNamespace]:
    """Factory for tool-call objects."""
    return make_tool_call

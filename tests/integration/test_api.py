"""
Integration tests for the HTTP API

Runs the FastAPI app with an auditor whose model and Mimecast dependencies
are mocked.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from tenacity import wait_none

from mail_audit_agent.main import create_app
from mail_audit_agent.models.search import EmailRecord, SearchParameters, SearchStatus
from mail_audit_agent.services.email_auditor import EmailAuditor
from mail_audit_agent.services.query_interpreter import IntentNotRecognizedError
from mail_audit_agent.services.search_gateway import GatewayError

API_HEADERS = {"X-API-Key": "test-bot-key"}


@pytest.fixture
def interpreter() -> MagicMock:
    mock = MagicMock()
    mock.interpret = AsyncMock(
        return_value=SearchParameters(status=SearchStatus.BLOCKED, sender="test@example.com", window_days=3)
    )
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def gateway() -> MagicMock:
    mock = MagicMock()
    mock.health_check = AsyncMock(return_value=True)
    mock.search = AsyncMock(
        return_value=[EmailRecord(id="msg-001", subject="Invoice", sender="test@example.com", status="blocked")]
    )
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def auditor(interpreter, gateway) -> EmailAuditor:
    return EmailAuditor(interpreter, gateway, health_retries=1, health_wait=wait_none())


@pytest.fixture
def client(auditor):
    with TestClient(create_app(auditor=auditor)) as test_client:
        yield test_client


def _message(text, **extra):
    return {"type": "message", "id": "act-1", "text": text, "from": {"id": "user-1"}, **extra}


@pytest.mark.api
class TestHealthEndpoints:
    """Test suite for health and readiness endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_after_startup(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"
        assert response.json()["email_auditor"] is True

    def test_not_ready_when_mimecast_down_at_startup(self, auditor, gateway):
        gateway.health_check.return_value = False

        with TestClient(create_app(auditor=auditor)) as test_client:
            response = test_client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not ready"
        assert response.json()["email_auditor"] is False
        assert "timestamp" in response.json()

    def test_ready_documents_both_outcomes(self, client):
        ready = client.get("/openapi.json").json()["paths"]["/ready"]["get"]["responses"]

        assert ready["200"]["content"]["application/json"]["schema"]["$ref"].endswith("/ReadinessResponse")
        assert ready["503"]["content"]["application/json"]["schema"]["$ref"].endswith("/ReadinessResponse")

    def test_detailed_health_reports_metrics(self, client):
        client.post("/api/messages", json=_message("blocked mail"), headers=API_HEADERS)

        body = client.get("/health/detailed").json()

        assert body["auditor_state"] == "ready"
        assert body["mimecast"] is True
        assert body["metrics"]["operations"]["run_query"]["total"] == 1

    def test_shutdown_closes_clients(self, auditor, interpreter, gateway):
        with TestClient(create_app(auditor=auditor)):
            pass

        interpreter.aclose.assert_awaited_once()
        gateway.aclose.assert_awaited_once()


@pytest.mark.api
class TestMessagesEndpoint:
    """Test suite for the chat webhook"""

    def test_requires_api_key(self, client):
        assert client.post("/api/messages", json=_message("hi")).status_code == 401
        assert client.post("/api/messages", json=_message("hi"), headers={"X-API-Key": "wrong"}).status_code == 403

    def test_query_returns_results_card(self, client, interpreter):
        """
        Test a successful chat query

        Given: A message asking for blocked mail
        When: It is posted to /api/messages
        Then: The reply carries a results card listing the record
        """
        response = client.post(
            "/api/messages",
            json=_message("  Show blocked emails from test@example.com last 3 days "),
            headers=API_HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "message"
        assert body["replyToId"] == "act-1"
        card = body["attachments"][0]["content"]
        assert "Found 1 Email(s)" in card["body"][0]["items"][0]["text"]
        interpreter.interpret.assert_awaited_once_with("Show blocked emails from test@example.com last 3 days")
        assert "X-Request-ID" in response.headers

    def test_empty_text_returns_welcome_card(self, client, interpreter):
        response = client.post("/api/messages", json=_message("   "), headers=API_HEADERS)

        card = response.json()["attachments"][0]["content"]
        assert "Mail Audit Agent" in card["body"][0]["items"][0]["text"]
        interpreter.interpret.assert_not_called()

    def test_non_message_activity_is_acknowledged(self, client, interpreter):
        response = client.post(
            "/api/messages",
            json={"type": "conversationUpdate", "membersAdded": [{"id": "bot"}]},
            headers=API_HEADERS,
        )

        assert response.status_code == 202
        interpreter.interpret.assert_not_called()

    def test_intent_error_asks_to_rephrase(self, client, interpreter):
        interpreter.interpret.side_effect = IntentNotRecognizedError("Please rephrase your query.", query="hi")

        response = client.post("/api/messages", json=_message("hi"), headers=API_HEADERS)

        assert response.status_code == 200
        error_text = response.json()["attachments"][0]["content"]["body"][0]["items"][1]["text"]
        assert error_text == "Please rephrase your query."

    def test_infrastructure_error_is_generic(self, client, gateway):
        gateway.search.side_effect = GatewayError("Mimecast search failed with status 500", status_code=500)

        response = client.post("/api/messages", json=_message("blocked mail"), headers=API_HEADERS)

        error_text = response.json()["attachments"][0]["content"]["body"][0]["items"][1]["text"]
        assert error_text.startswith("Sorry, something went wrong")
        assert "Error ID: error-" in error_text
        assert "status 500" not in error_text

    def test_not_ready_returns_503(self, auditor, gateway):
        gateway.health_check.return_value = False

        with TestClient(create_app(auditor=auditor)) as test_client:
            response = test_client.post("/api/messages", json=_message("blocked mail"), headers=API_HEADERS)

        assert response.status_code == 503

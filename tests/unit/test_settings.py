"""
Unit tests for configuration loading
"""
import pytest
from pydantic import ValidationError

from mail_audit_agent.config.settings import LLMConfig, MimecastConfig, ServerConfig


@pytest.mark.unit
class TestSettings:
    """Test suite for settings sections"""

    def test_mimecast_defaults(self, monkeypatch):
        monkeypatch.delenv("MIMECAST_BASE_URL", raising=False)

        config = MimecastConfig()

        assert config.base_url == "https://api.mimecast.com"
        assert config.timeout_seconds == 30
        assert config.page_size == 100
        assert config.secret_key.get_secret_value() == "c2VjcmV0LWtleQ=="

    def test_page_size_cannot_exceed_100(self, monkeypatch):
        monkeypatch.setenv("MIMECAST_PAGE_SIZE", "500")

        with pytest.raises(ValidationError):
            MimecastConfig()

    def test_missing_credentials_fail(self, monkeypatch):
        monkeypatch.delenv("MIMECAST_SECRET_KEY")

        with pytest.raises(ValidationError):
            MimecastConfig()

    def test_empty_llm_base_url_is_unset(self, monkeypatch):
        monkeypatch.setenv("OPENAI_BASE_URL", "")

        assert LLMConfig().base_url is None

    def test_cors_origins_parsed_from_csv(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")

        assert ServerConfig().cors_origins == ["https://a.example", "https://b.example"]

    def test_secrets_are_masked(self):
        assert "test-openai-key" not in repr(LLMConfig())

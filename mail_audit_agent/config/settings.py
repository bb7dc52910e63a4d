"""Configuration management using Pydantic Settings."""

from typing import Annotated, Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    env: Literal["development", "production", "testing"] = Field(default="development", alias="APP_ENV")
    debug: bool = Field(default=False, alias="APP_DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")


class LLMConfig(BaseSettings):
    """Language model (function calling) configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    api_key: SecretStr = Field(alias="OPENAI_API_KEY")
    base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    model: str = Field(default="gpt-4o-mini", alias="LLM_MODEL")
    max_tokens: int = Field(default=1024, ge=1, alias="LLM_MAX_TOKENS")
    timeout_seconds: float = Field(default=30.0, gt=0, alias="LLM_TIMEOUT")

    @field_validator("base_url", mode="before")
    @classmethod
    def empty_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty string as unset."""
        if v is None or v == "":
            return None
        return v


class MimecastConfig(BaseSettings):
    """Mimecast API configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    base_url: str = Field(default="https://api.mimecast.com", alias="MIMECAST_BASE_URL")
    app_id: str = Field(alias="MIMECAST_APP_ID")
    app_key: str = Field(alias="MIMECAST_APP_KEY")
    access_key: SecretStr = Field(alias="MIMECAST_ACCESS_KEY")
    secret_key: SecretStr = Field(alias="MIMECAST_SECRET_KEY")  # base64 encoded
    timeout_seconds: float = Field(default=30.0, gt=0, alias="MIMECAST_TIMEOUT")
    page_size: int = Field(default=100, ge=1, le=100, alias="MIMECAST_PAGE_SIZE")
    health_retries: int = Field(default=3, ge=1, alias="MIMECAST_HEALTH_RETRIES")


class ServerConfig(BaseSettings):
    """HTTP listener configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    port: int = Field(default=3978, alias="PORT")
    bot_api_key: SecretStr = Field(alias="BOT_API_KEY")
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_origins(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


class Settings(BaseSettings):
    """Master settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app: AppConfig = Field(default_factory=AppConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    mimecast: MimecastConfig = Field(default_factory=MimecastConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


# Global settings instance
settings = Settings()

"""Configuration management for agentrelay."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTRELAY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # API Configuration
    api_key: Optional[str] = Field(None, description="API key for the model backend")
    api_base: Optional[str] = Field(None, description="Optional API base URL")
    model_override: Optional[str] = Field(None, description="Model used for every agent instead of its own")
    max_tokens: Optional[int] = Field(None, description="Maximum tokens per completion")

    # Run Configuration
    max_turns: Optional[int] = Field(None, ge=1, description="Turn budget per run; unset means unbounded")
    execute_tools: bool = Field(default=True, description="Execute tool calls requested by the model")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_profile: Literal["default", "chat"] = Field(default="default", description="Log output profile")

    # Tracing Configuration
    tracing: Literal["none", "logfire"] = Field(default="none", description="Observability sink")
    logfire_send: bool = Field(default=False, description="Export spans to the Logfire service")


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        overrides: Field values that take precedence over the environment

    Returns:
        Settings instance
    """
    return Settings(**overrides)

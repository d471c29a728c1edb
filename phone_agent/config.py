"""
Configuration Management
========================

Centralized configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Shared config that all settings classes use to load .env
_shared_config = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    env_prefix="",
    extra="ignore",
)


class OracleSettings(BaseSettings):
    """Settings for the LLM that decides the next phone action."""

    model_config = _shared_config

    groq_api_key: str = Field(
        default="",
        description="Groq API key used for automation decisions",
    )
    groq_model: str = Field(
        default="qwen/qwen3-32b",
        description="Groq chat model that emits one JSON action per call",
    )
    oracle_temperature: float = Field(default=0.1, description="Sampling temperature")
    oracle_max_tokens: int = Field(default=256, description="Max output tokens per decision")
    oracle_timeout: float = Field(default=30.0, description="Request timeout in seconds")
    oracle_rate_limit_retries: int = Field(
        default=2,
        description="Retries on 429 responses before the decision is reported as failed",
    )


class ChannelSettings(BaseSettings):
    """Settings for the polling command channel (Supabase commands table)."""

    model_config = _shared_config

    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_anon_key: str = Field(default="", description="Supabase anon key")
    supabase_phone_table: str = Field(
        default="commands",
        description="Table the phone polls for commands",
    )

    # User-facing one-shot commands
    poll_interval: float = Field(default=0.5, description="Standard poll interval in seconds")
    poll_timeout: float = Field(default=15.0, description="Standard poll deadline in seconds")

    # Automation loop
    fast_poll_interval: float = Field(default=0.2, description="Fast poll interval in seconds")
    fast_poll_timeout: float = Field(default=10.0, description="Fast poll deadline in seconds")

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the project URL so paths can be appended."""
        return v.rstrip("/")


class AutomationSettings(BaseSettings):
    """Automation loop configuration."""

    model_config = _shared_config

    automation_max_steps: int = Field(default=20, description="Hard step ceiling per goal")
    max_same_action: int = Field(
        default=3,
        description="Consecutive identical actions before the run is aborted as stuck",
    )
    max_empty_observations: int = Field(
        default=3,
        description="Consecutive unreadable screens before the run is aborted",
    )
    ui_settle_delay: float = Field(
        default=0.8,
        description="Pause after an action so the device UI can redraw",
    )
    wait_action_delay: float = Field(default=1.5, description="Duration of the 'wait' action")
    history_window: int = Field(default=3, description="Past actions shown to the LLM")
    max_text_length: int = Field(default=80, description="Per-element text cap")


class ServerSettings(BaseSettings):
    """Server configuration settings."""

    model_config = _shared_config

    server_host: str = Field(default="0.0.0.0", description="Server host")
    server_port: int = Field(default=8000, description="Server port")
    debug: bool = Field(default=True, description="Debug mode")
    environment: str = Field(default="development", description="Environment name (development, staging, production)")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    cors_origins: str = Field(default="*", description="CORS origins")

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


class Settings(BaseSettings):
    """
    Main settings class combining all configuration sections.

    Usage:
        from phone_agent.config import get_settings
        settings = get_settings()
        print(settings.oracle.groq_model)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    oracle: OracleSettings = Field(default_factory=OracleSettings)
    channel: ChannelSettings = Field(default_factory=ChannelSettings)
    automation: AutomationSettings = Field(default_factory=AutomationSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    def __init__(self, **kwargs):
        """Initialize settings with nested configuration."""
        super().__init__(**kwargs)
        # Re-initialize nested settings to pick up env vars
        self.oracle = OracleSettings()
        self.channel = ChannelSettings()
        self.automation = AutomationSettings()
        self.server = ServerSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings loaded from environment.
    """
    return Settings()

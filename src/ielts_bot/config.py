"""
Configuration management for the IELTS Monitor Bot.

Loads and validates all required environment variables with clear error messages.
Uses Pydantic Settings for type safety and validation.
"""

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The bot token is required; the application fails fast with a clear
    error message when it is missing or when the selected state backend
    lacks its credentials.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Telegram Bot API Configuration
    bot_token: str = Field(
        ...,
        min_length=1,
        description="Telegram Bot API token (from @BotFather)"
    )

    # Monitoring target
    target_url: str = Field(
        default="http://prep.bilkent.edu.tr/ielts/",
        min_length=1,
        description="Page that lists upcoming IELTS exam dates"
    )
    check_interval: int = Field(
        default=5,
        ge=1,
        description="Minutes between two checks"
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for page fetches and message sends"
    )
    initial_check_delay: float = Field(
        default=10.0,
        ge=0,
        description="Seconds to wait before the first check after startup"
    )
    send_startup_message: bool = Field(
        default=True,
        description="Send a test message to all subscribers when the bot starts"
    )

    # State persistence
    state_backend: Literal["file", "supabase", "memory"] = Field(
        default="file",
        description="Where bot state is persisted"
    )
    state_file: str = Field(
        default="bot-state.json",
        description="Path of the JSON state file for the 'file' backend"
    )
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (for the 'supabase' backend)"
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (not anon key)"
    )

    # Optional Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    timezone: str = Field(
        default="Europe/Istanbul",
        description="Timezone for displayed timestamps"
    )
    chat_ids: Optional[str] = Field(
        default=None,
        description="Legacy fixed recipient list. Ignored: chats subscribe with /start."
    )

    @field_validator("target_url")
    @classmethod
    def validate_target_url(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("TARGET_URL must start with http:// or https://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return upper

    @model_validator(mode="after")
    def validate_backend_credentials(self) -> "Settings":
        """The Supabase backend cannot start without its credentials."""
        if self.state_backend == "supabase":
            if not self.supabase_url or not self.supabase_service_role_key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required "
                    "when STATE_BACKEND=supabase"
                )
        return self

    @property
    def check_interval_seconds(self) -> float:
        """Interval between checks in seconds."""
        return self.check_interval * 60.0


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Validated application settings

    Raises:
        ValidationError: If required environment variables are missing or invalid
    """
    return Settings()


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Configure application logging.

    Args:
        settings: Optional settings instance, will be loaded if not provided

    Returns:
        logging.Logger: Configured logger instance
    """
    level = settings.log_level if settings is not None else "INFO"

    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    return logging.getLogger("ielts_bot")

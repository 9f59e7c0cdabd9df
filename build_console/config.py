"""Configuration settings for build_console.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the BUILD_CONSOLE_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILD_CONSOLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the build server (without /api)",
    )
    client_path: str = Field(
        default="/",
        description="Path of the client view opened after activation",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single API request (seconds)",
    )

    # View
    page_size: int = Field(
        default=50,
        ge=1,
        description="Number of builds per page",
    )

    # Timers (in seconds)
    poll_interval: float = Field(
        default=3.0,
        gt=0,
        description="Interval between reconciliation poll ticks",
    )
    poll_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Ceiling after which a reconciliation poll stops",
    )
    fetch_cooldown: float = Field(
        default=5.0,
        ge=0,
        description="Cooldown before the fetch-current control is re-enabled",
    )
    activate_open_delay: float = Field(
        default=0.5,
        ge=0,
        description="Delay before opening the client after activation",
    )
    search_debounce: float = Field(
        default=0.2,
        ge=0,
        description="Debounce window for search input",
    )
    toast_display: float = Field(
        default=4.0,
        gt=0,
        description="How long a notification stays visible",
    )
    toast_transition: float = Field(
        default=0.2,
        ge=0,
        description="Removal transition after a notification expires",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def client_url(self) -> str:
        """Absolute URL of the client view."""
        return self.base_url.rstrip("/") + "/" + self.client_path.lstrip("/")


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]

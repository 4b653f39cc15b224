"""
Configuration module for the ward monitor.
Uses Pydantic BaseSettings for validation - app fails fast if config values are malformed.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Ward monitor settings.
    Values are read from environment variables or a local .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Partogram Service API Configuration
    partogram_svc_api_url: str = Field(
        default="http://localhost:8000",
        description="URL of the Partogram Service API"
    )
    ward_monitor_request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout in seconds"
    )

    # Timer loops
    ward_monitor_tick_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Local countdown tick interval"
    )
    ward_monitor_foreground_poll_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Server reconciliation interval while the view is visible"
    )
    ward_monitor_background_poll_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Server reconciliation interval while the view is hidden; 0 pauses polling"
    )


# Create global settings instance
settings = Settings()

# Module-level exports for existing code
PARTOGRAM_SVC_API_URL = settings.partogram_svc_api_url
REQUEST_TIMEOUT = settings.ward_monitor_request_timeout
TICK_SECONDS = settings.ward_monitor_tick_seconds
FOREGROUND_POLL_SECONDS = settings.ward_monitor_foreground_poll_seconds
BACKGROUND_POLL_SECONDS = settings.ward_monitor_background_poll_seconds

"""
Configuration module for the Partogram Service API.
Uses Pydantic BaseSettings for validation - app fails fast if config values are malformed.
"""
import logging
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with validation.
    Values are read from environment variables or a local .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database Configuration
    partogram_svc_db_dir: str = Field(default="data", description="Database directory")
    partogram_svc_db_file: str = Field(default="partogram.db", description="Database filename")
    partogram_svc_db_busy_timeout: int = Field(default=5000, description="SQLite busy timeout in milliseconds")

    # API Configuration
    partogram_svc_host: str = Field(default="0.0.0.0", description="API host")
    partogram_svc_port: int = Field(default=8000, description="API port")
    partogram_svc_reload: bool = Field(default=False, description="Enable hot reload")

    # Measurement policy
    partogram_svc_measurement_order_policy: Literal["accept", "reject"] = Field(
        default="accept",
        description="How to treat a measurement timed earlier than the patient's latest one: "
                    "'accept' stores it at face value, 'reject' refuses it",
    )

    @model_validator(mode="after")
    def warn_on_policy(self) -> "Settings":
        """Log non-default clinical policies at startup so they show up in the logs."""
        if self.partogram_svc_measurement_order_policy == "reject":
            logger.warning(
                "Out-of-order measurements will be rejected "
                "(PARTOGRAM_SVC_MEASUREMENT_ORDER_POLICY=reject)"
            )
        return self

    @property
    def database_path(self) -> str:
        """Get the full database path."""
        return str(Path(self.partogram_svc_db_dir) / self.partogram_svc_db_file)

    @property
    def reject_out_of_order_measurements(self) -> bool:
        return self.partogram_svc_measurement_order_policy == "reject"

    def ensure_directories(self) -> None:
        """Ensure required directories exist."""
        Path(self.partogram_svc_db_dir).mkdir(parents=True, exist_ok=True)


# Create global settings instance
settings = Settings()

# Ensure directories exist on import
settings.ensure_directories()

# Module-level exports for existing code
DATABASE_DIR = settings.partogram_svc_db_dir
DATABASE_FILE = settings.partogram_svc_db_file
DATABASE_PATH = settings.database_path
DATABASE_BUSY_TIMEOUT = settings.partogram_svc_db_busy_timeout

API_HOST = settings.partogram_svc_host
API_PORT = settings.partogram_svc_port
API_RELOAD = settings.partogram_svc_reload

MEASUREMENT_ORDER_POLICY = settings.partogram_svc_measurement_order_policy

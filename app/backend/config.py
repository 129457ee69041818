"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files. Every credential is
optional here: a missing key is reported by the client that needs it, at first
use, not at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI (extraction, chat and prompt helper)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1"
    max_output_tokens: int = 2048

    # Retry policy for model calls
    retry_max_attempts: int = 5
    retry_initial_delay: float = 1.0

    # Extraction response contract
    json_response_mode: bool = True
    response_field_policy: str = "default"

    # Ingestion: "inline", "reference" or "convert"
    ingestion_strategy: str = "inline"
    extract_docx_text: bool = True

    # Resumable upload to the OpenAI file store (reference ingestion).
    # Falls back to openai_api_key; must belong to the same OpenAI project.
    upload_api_key: str | None = None
    upload_part_size: int = 64 * 1024 * 1024

    # Conversion endpoint, as seen by the ingestion client
    conversion_service_url: str | None = None
    conversion_service_key: str | None = None

    # Conversion provider, as used by the /convert-document endpoint
    cloudconvert_api_key: str | None = None
    cloudconvert_base_url: str = "https://api.cloudconvert.com/v2"
    conversion_poll_interval: float = 1.0
    conversion_max_attempts: int = 30

    log_level: str = "INFO"
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the backend directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()

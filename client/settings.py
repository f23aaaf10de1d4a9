"""Client configuration."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Settings for the intake client, read from ``CONTRACT_CLIENT_*`` variables."""

    base_url: str = "http://localhost:8000"

    # Credential and identity headers; sent as-is, never refreshed here
    api_token: str = ""
    tenant_id: Optional[str] = None
    user_id: Optional[str] = None

    request_timeout_s: float = 30.0

    # Upload
    max_upload_mb: int = 20
    upload_timeout_s: float = 300.0
    upload_chunk_size: int = 64 * 1024

    # Analysis polling
    poll_interval_s: float = 2.0
    poll_max_wait_s: float = 120.0

    # Display buckets for confidence scores
    confidence_high: float = 0.85
    confidence_medium: float = 0.6

    model_config = SettingsConfigDict(
        env_prefix="CONTRACT_CLIENT_",
        env_file=".env",
        extra="ignore",
    )

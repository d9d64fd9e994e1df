"""Application settings loaded from environment with validation."""

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
StorageBackend = Literal["memory", "redis", "cloudflare", "firestore"]

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Service settings from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Storage
    storage_backend: StorageBackend = Field(
        default="memory",
        description="Record store: memory (dev), redis (Vercel KV / Upstash), cloudflare (Workers KV), firestore",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (rediss:// for TLS endpoints such as Vercel KV)",
    )
    redis_socket_timeout_seconds: float = Field(default=5.0, gt=0, le=60)

    # Cloudflare Workers KV
    cloudflare_account_id: str = Field(default="", description="Cloudflare account ID")
    cloudflare_namespace_id: str = Field(default="", description="Workers KV namespace ID")
    cloudflare_api_token: str = Field(default="", description="API token with KV read/write permission")
    cloudflare_api_base_url: str = Field(
        default="https://api.cloudflare.com/client/v4",
        description="Cloudflare REST API base URL",
    )
    cloudflare_timeout_seconds: float = Field(default=10.0, gt=0, le=120)

    # Firestore
    gcp_project_id: str = Field(default="", description="GCP project ID (Firestore, Secret Manager, Cloud Trace)")
    firestore_collection_records: str = Field(
        default="records",
        min_length=1,
        description="Firestore collection holding one document per record",
    )

    # Record limits
    default_ttl_ms: int = Field(
        default=7 * 24 * 60 * 60 * 1000,
        gt=0,
        description="TTL applied when a write does not request one (7 days)",
    )
    max_payload_length: int = Field(default=1024 * 1024, ge=1)
    max_password_length: int = Field(default=128, ge=1)

    # Transport
    client_ip_headers: str = Field(
        default="CF-Connecting-IP,X-Real-IP,X-Forwarded-For",
        description="Comma-separated headers consulted in order to resolve the caller IP",
    )
    service_version: str = Field(default="1.2.0")

    # Logging
    log_level: LogLevel = Field(default="INFO")

    # Offline migration (Redis -> Cloudflare KV)
    migrate_batch_size: int = Field(default=10, ge=1, le=500)
    migrate_retry_attempts: int = Field(default=3, ge=1, le=10)
    migrate_retry_delay_seconds: float = Field(default=1.0, ge=0, le=60)

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        u = (v or "INFO").upper()
        if u not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return u

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        return (v or "memory").strip().lower()

    @property
    def client_ip_header_list(self) -> list[str]:
        return [h.strip() for h in self.client_ip_headers.split(",") if h.strip()]

    def resolve_secrets(self) -> None:
        """Resolve Secret Manager references (sm://name) for sensitive settings."""
        def _resolve(value: str) -> str:
            if not value or not value.startswith("sm://"):
                return value
            secret_name = value.removeprefix("sm://")
            if not self.gcp_project_id:
                logger.warning("Cannot resolve %s without GCP_PROJECT_ID", value)
                return value
            from google.api_core import exceptions as gcp_exceptions
            from google.cloud import secretmanager

            client = secretmanager.SecretManagerServiceClient()
            secret_path = f"projects/{self.gcp_project_id}/secrets/{secret_name}/versions/latest"
            try:
                response = client.access_secret_version(request={"name": secret_path})
            except gcp_exceptions.GoogleAPIError as exc:
                logger.warning("Secret Manager lookup failed for %s: %s", secret_name, exc)
                return value
            return response.payload.data.decode("utf-8")

        self.redis_url = _resolve(self.redis_url)
        self.cloudflare_api_token = _resolve(self.cloudflare_api_token)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    settings = Settings()
    settings.resolve_secrets()
    return settings


def optional_setting(value: str) -> Optional[str]:
    """Treat empty-string settings as unset."""
    return value or None

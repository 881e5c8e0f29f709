"""Configuration settings for the privacy gateway."""

from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TargetRewrite(BaseModel):
    """Replacement scheme and host for requests to a given target origin."""

    scheme: str = "https"
    host: str


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service identification
    service_name: str = "privacy-gateway"

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8080

    # Diagnostics: verbose controls server-side logging, debug controls
    # what error detail reaches clients and enables the marshal endpoints
    debug: bool = False
    verbose: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_request_headers: bool = False

    # Key configuration
    key_id: int = Field(default=1, ge=0, le=255)
    seed_secret_key: str | None = None  # hex; a random key is generated when unset

    # Routes. config_path is the key configuration endpoint, served at
    # /ohttp-configs by default; set GATEWAY_CONFIG_PATH=/config to publish it
    # at /config instead. keys_path serves the same key as an ohttp-keys list.
    gateway_path: str = "/gateway"
    echo_path: str = "/gateway-echo"
    config_path: str = "/ohttp-configs"
    keys_path: str = "/ohttp-keys"
    marshal_prefix: str = "/marshal"
    health_path: str = "/health"
    metrics_path: str = "/metrics"

    # Targets
    allowed_target_origins: str = ""  # comma-separated; empty allows every origin
    target_rewrites: dict[str, TargetRewrite] = {}
    target_timeout: float = 30.0

    # Key configuration cache lifetime sampling
    cache_jitter_seed: int | None = None

    metrics_enabled: bool = True

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("seed_secret_key")
    @classmethod
    def _validate_seed(cls, v: str | None) -> str | None:
        if not v:
            return None
        try:
            seed = bytes.fromhex(v)
        except ValueError as exc:
            raise ValueError("seed_secret_key must be hex encoded") from exc
        if len(seed) < 32:
            raise ValueError("seed_secret_key must be at least 32 bytes")
        return v

    @property
    def seed(self) -> bytes | None:
        return bytes.fromhex(self.seed_secret_key) if self.seed_secret_key else None

    @property
    def allowed_origins(self) -> frozenset[str] | None:
        """Allowed target origins, or None when every origin is allowed."""
        origins = {
            origin.strip().lower()
            for origin in self.allowed_target_origins.split(",")
            if origin.strip()
        }
        return frozenset(origins) if origins else None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

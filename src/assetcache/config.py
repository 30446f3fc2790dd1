from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ASSETCACHE_", env_file=".env", extra="ignore")

    # Resolution cache
    cache_ttl_seconds: float = Field(default=24 * 60 * 60, gt=0)  # 24 hours
    cache_max_attempts: int = Field(default=3, ge=1)
    cache_retry_delay: float = Field(default=1.0, ge=0)  # linear: delay * attempt
    # Retry "not found" like any other failure instead of failing fast
    cache_retry_not_found: bool = False
    cache_namespace: str = "asset_url:"
    # Seconds between background expiry sweeps, 0 disables the sweeper
    cache_sweep_interval: float = Field(default=3600.0, ge=0)

    # Resolver
    resolver_type: str = "http"
    storage_bucket: str | None = Field(default=None, validation_alias="STORAGE_BUCKET")
    resolver_base_url: str = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/"
    resolver_timeout: float = Field(default=10.0, gt=0)

    # GCS resolver (when resolver_type="gcs")
    gcs_project: str | None = Field(default=None, validation_alias="GCS_PROJECT")
    gcs_credentials_path: str | None = Field(default=None, validation_alias="GCS_CREDENTIALS_PATH")
    signed_url_expiration: int = Field(default=25 * 60 * 60, gt=0)  # outlives cache TTL

    # Durable key-value store
    kv_store_type: str = "local"
    kv_store_path: str = "~/.cache/assetcache"
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Observability
    log_level: str = "INFO"
    log_json: bool = True
    enable_metrics: bool = True


settings = Settings()

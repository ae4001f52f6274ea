from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(..., env="DATABASE_URL")
    celery_broker_url: str = Field(
        "redis://localhost:6379/0",
        env="CELERY_BROKER_URL",
    )

    uploads_dir: str = Field("uploads", env="UPLOADS_DIR")
    uploads_base_url: str = Field("/uploads", env="UPLOADS_BASE_URL")

    max_unpinned_versions: int = Field(10, env="MAX_UNPINNED_VERSIONS")
    protect_pinned_versions: bool = Field(False, env="PROTECT_PINNED_VERSIONS")

    export_render_timeout_seconds: int = Field(
        60,
        env="EXPORT_RENDER_TIMEOUT_SECONDS",
    )
    export_job_ttl_seconds: int = Field(
        86400,
        env="EXPORT_JOB_TTL_SECONDS",
    )
    export_archive_prefix: str = Field(
        "resources",
        env="EXPORT_ARCHIVE_PREFIX",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


__all__ = ["settings", "Settings"]

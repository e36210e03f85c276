from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Default bin length (meters) when a request does not send one
    default_bin_length: float = 50.0

    # Upload limits for the multipart endpoints
    max_upload_files: int = 200
    max_upload_bytes: int = 50 * 1024 * 1024

    # Batch jobs that are uploaded but never streamed are evicted after this
    batch_job_ttl_seconds: int = 900
    eviction_interval_seconds: int = 60
    # Pause after each progress event so SSE consumers can drain the stream
    progress_delay_seconds: float = 0.05

    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    @field_validator("default_bin_length")
    @classmethod
    def _positive_bin_length(cls, v):
        if v <= 0:
            raise ValueError("default_bin_length must be > 0")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        return str(v or "INFO").upper()

    model_config = SettingsConfigDict(env_file=".env", env_prefix="RUNGRADE_", extra="ignore")


settings = Settings()

"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "internmatch"

    # Supabase (identity provider + object storage)
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""
    supabase_jwt_secret: str = "change-this-secret"
    supabase_jwt_audience: str = "authenticated"
    jwt_algorithm: str = "HS256"
    resume_bucket: str = "resumes-private"
    storage_timeout_seconds: float = 10.0

    # Resume uploads
    upload_token_ttl_minutes: int = 30
    upload_daily_limit: int = 20
    max_resume_size_bytes: int = 10 * 1024 * 1024

    # Signed access URLs
    student_url_ttl_seconds: int = 3600
    company_url_ttl_seconds: int = 300
    company_access_hourly_limit: int = 50

    # Resume scanner webhook
    scan_webhook_secret: str = "change-this-webhook-secret"

    # Email (SMTP)
    email_enabled: bool = False
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    email_sender: str = "no-reply@internmatch.local"
    smtp_timeout_seconds: float = 10.0
    frontend_url: str = "http://localhost:5173"

    # App
    debug: bool = True
    log_level: str = "INFO"

    @property
    def storage_base_url(self) -> str:
        """Supabase Storage REST endpoint"""
        return f"{self.supabase_url.rstrip('/')}/storage/v1"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_name: str = "Hospital Administration Backend"
    database_url: str = Field(
        default="sqlite:///./hospital.db",
        description="SQLAlchemy compatible database URI",
    )
    sqlite_busy_timeout: float = Field(
        default=30.0,
        description="Seconds a SQLite writer waits for the database write lock",
    )
    jwt_secret_key: str = Field(default="change-me", description="JWT signing secret")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    default_consultation_minutes: int = 30
    max_page_size: int = 100
    first_superuser_email: str = "admin@hospital.local"
    first_superuser_password: str = "admin123"
    log_level: str = "INFO"
    log_json: bool = False
    audit_enabled: bool = True
    strict_status_transitions: bool = Field(
        default=False,
        description="Reject appointment status changes outside the transition table",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()

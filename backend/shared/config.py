"""
Centralized configuration for the MindQuest backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., SUPABASE_*, SESSION_*).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "MindQuest API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase (identity provider and document store)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_db_url: str = ""  # Direct Postgres URI, used by run_migrations.py

    # Access tokens
    access_token_secret: str = ""
    access_token_algorithm: str = "HS256"
    access_token_audience: str = "mindquest-api"
    access_token_ttl_minutes: int = 15

    # Refresh tokens
    refresh_token_ttl_days: int = 14
    refresh_token_bytes: int = 40

    # Sessions
    session_ttl_days: int = 14
    session_inactivity_minutes: int = 30

    # Document store retries
    store_retry_attempts: int = 3
    store_retry_initial_delay: float = 0.1  # seconds
    store_retry_max_delay: float = 3.0  # seconds

    # Create the user record on first verified ID token
    user_autocreate: bool = True


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()

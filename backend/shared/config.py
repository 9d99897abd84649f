"""
Centralized configuration for the 40+ Pickleball backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., SUPABASE_*, SESSION_*).
"""

from functools import lru_cache
from pathlib import Path
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
    app_name: str = "40+ Pickleball API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase (anon key only, the controller acts on behalf of the signed-in user)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Frontend URLs (for magic link redirects)
    frontend_url: str = "http://localhost:5173"

    # Session handling
    session_check_interval_seconds: float = 60.0
    session_refresh_threshold_seconds: float = 3600.0
    device_trust_path: Path = Path.home() / ".fortyplus-pickleball" / "remember-me"
    placeholder_credential_bytes: int = 32

    @property
    def auth_configured(self) -> bool:
        """Whether an identity provider is reachable (otherwise degraded mode)."""
        return bool(self.supabase_url and self.supabase_anon_key)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()

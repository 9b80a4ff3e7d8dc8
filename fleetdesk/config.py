# fleetdesk/config.py

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "FleetDesk API"
    app_env: str = "development"
    debug: bool = True
    frontend_url: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Supabase
    supabase_url: str
    supabase_service_role_key: str

    # Google Sheets
    google_sheets_api_key: str = ""
    google_sheets_timeout_seconds: float = 20.0

    # Owner directory
    owner_roles: list[str] = ["teamLeader"]
    # Empty means any alphabetic prefix is accepted, e.g. "KONTI/357"
    owner_badge_prefixes: list[str] = []

    # Import engine
    history_error_cap: int = 50
    row_timeout_seconds: float = 15.0
    run_deadline_seconds: float = 1800.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()

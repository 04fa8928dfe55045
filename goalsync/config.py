"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Backend API
    backend_url: str = "http://localhost:3000"
    request_timeout_seconds: float = 30.0

    # Session
    auth_cookie_name: str = "auth_token"

    # Reconciliation
    sweep_interval_seconds: float = 5.0
    recent_update_window_seconds: float = 10.0
    startup_delay_seconds: float = 1.0

    # API
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


settings = Settings()

"""Module: config."""

from pydantic_settings import BaseSettings

# Centralized runtime configuration loaded from environment variables.
class Settings(BaseSettings):
    # Primary SQLAlchemy connection string for the backend database.
    database_url: str = "sqlite:///./filhos.db"
    # Browser origins allowed to call the API (the SPA dev server by default).
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    log_level: str = "INFO"

    # VAPID credentials for web push. Push is disabled while either key is empty.
    vapid_public_key: str = ""
    vapid_private_key: str = ""
    vapid_subject: str = "mailto:filhos@replit.app"

    # Daily vaccine reminder scheduler.
    notifications_enabled: bool = True
    notification_hour: int = 9
    notification_window_minutes: int = 5
    notification_check_interval_seconds: int = 300
    notification_timezone: str = "America/Sao_Paulo"

    # Year-based boosters beyond these caps are ignored when parsing age ranges.
    dashboard_max_booster_years: int = 6
    notification_max_booster_years: int = 14

    # Hours an invite code stays redeemable after it is generated.
    invite_ttl_hours: int = 48

    # Configure pydantic-settings to also load values from local .env file.
    class Config:
        env_file = ".env"

    @property
    def push_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

# Global settings instance imported by app modules at runtime.
settings = Settings()

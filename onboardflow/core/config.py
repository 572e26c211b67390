"""Application configuration via pydantic-settings.

Loads all settings from environment variables with sensible defaults.
A global `settings` singleton is available for import throughout the app.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str
    STORAGE_BUCKET: str = "onboarding-documents"

    # Mail relay
    MAIL_RELAY_URL: str = ""
    MAIL_RELAY_TOKEN: str = ""
    HR_OPERATOR_EMAIL: str = ""

    # Documents
    DOCUMENT_CONFIG_VERSION: str = "v2"

    # Scheduler
    TICK_INTERVAL_MINUTES: int = 240
    TICK_MAX_WORKERS: int = 4
    REMINDER_RETRY_HOURS: float = 24.0

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()  # type: ignore[call-arg]

"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "printops_dev"

    # Auth (bearer tokens issued by the session service)
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = None

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Reminder scheduler
    reminder_scheduler_enabled: bool = True
    reminder_sweep_interval_seconds: int = 60  # One sweep per minute is enough for user-facing notices
    reminder_batch_size: int = 50
    reminder_max_delay_minutes: int = 60 * 24 * 90
    reminder_default_snooze_minutes: int = 60
    reminder_max_snooze_minutes: int = 60 * 24 * 14
    reminder_recheck_minutes: int = 60  # Deferred and failing reminders are retried after this

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
